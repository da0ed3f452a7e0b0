# data_loader.py
from typing import List

from findings_assistant.core import Finding


class DataLoader:
    """Handles loading and managing mock findings"""

    @staticmethod
    def get_mock_findings() -> List[Finding]:
        """Returns a list of mock audit findings"""
        mock_data = [
            {
                "id": "F-2024-001",
                "title": "APAR fire extinguishers past inspection date",
                "description": "Six APAR units on floors 3-5 had expired inspection tags and two were under-pressurised.",
                "severity": "High",
                "status": "Open",
                "department": "Engineering",
                "project_name": "Grand Harbour Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-03-12",
                "root_cause": "No owner assigned for the monthly fire equipment checklist.",
                "recommendation": "Assign the checklist to the chief engineer and track it in the maintenance system.",
                "risk_score": 16,
                "tags": ["fire safety", "APAR"],
            },
            {
                "id": "F-2024-002",
                "title": "Fire exit blocked by banquet storage",
                "description": "Emergency exit on the ballroom level was obstructed by stacked banquet chairs during the site visit.",
                "severity": "Critical",
                "status": "Closed",
                "department": "Operations",
                "project_name": "Grand Harbour Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-03-13",
                "root_cause": "Insufficient storage space allocated for events equipment.",
                "recommendation": "Designate a storage room and add exit checks to the event close-out routine.",
                "risk_score": 20,
                "tags": ["fire safety", "egress"],
            },
            {
                "id": "F-2024-003",
                "title": "Guest data stored on shared front desk drive",
                "description": "Scanned guest passports were saved on a shared drive accessible to all front office staff.",
                "severity": "High",
                "status": "In Progress",
                "department": "IT",
                "project_name": "Grand Harbour Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-04-02",
                "root_cause": "Legacy PMS export process never migrated to the secure document store.",
                "recommendation": "Move scans to the access-controlled document store and purge the shared drive.",
                "risk_score": 15,
                "tags": ["privacy", "access control"],
            },
            {
                "id": "F-2024-004",
                "title": "Kitchen hood cleaning records incomplete",
                "description": "Grease duct cleaning was logged for only two of four quarters.",
                "severity": "Medium",
                "status": "Open",
                "department": "Engineering",
                "project_name": "Seaview Resort Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-06-18",
                "root_cause": "Contractor schedule not aligned with the audit calendar.",
                "recommendation": "Add quarterly hood cleaning to the contractor SLA with evidence upload.",
                "risk_score": 9,
                "tags": ["fire safety", "kitchen"],
            },
            {
                "id": "F-2024-005",
                "title": "Vendor selection without competitive quotes",
                "description": "Three linen supply contracts above threshold were awarded without the required three quotes.",
                "severity": "High",
                "status": "Open",
                "department": "Procurement",
                "project_name": "Seaview Resort Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-07-01",
                "root_cause": "Urgent reopening timeline led to bypassing the tender procedure.",
                "recommendation": "Enforce the tender checklist in the purchasing system before PO approval.",
                "risk_score": 14,
                "tags": ["tender", "vendor"],
            },
            {
                "id": "F-2024-006",
                "title": "Overtime approvals missing signatures",
                "description": "Housekeeping overtime for peak season lacked supervisor approval on 40% of timesheets.",
                "severity": "Medium",
                "status": "Closed",
                "department": "HR",
                "project_name": "Grand Harbour Hotel",
                "project_type": "Hotel",
                "audit_year": 2024,
                "date_identified": "2024-08-20",
                "root_cause": "Paper timesheets signed after payroll cut-off.",
                "recommendation": "Switch to electronic overtime approval before payroll processing.",
                "risk_score": 8,
                "tags": ["payroll"],
            },
            {
                "id": "F-2024-007",
                "title": "Medical gas alarm panel not tested",
                "description": "Oxygen and vacuum alarm panels in ward B had no functional test record for 2024.",
                "severity": "Critical",
                "status": "Open",
                "department": "Engineering",
                "project_name": "Cityline Medical Centre",
                "project_type": "Hospital",
                "audit_year": 2024,
                "date_identified": "2024-05-09",
                "root_cause": "Test procedure not included in the preventive maintenance plan.",
                "recommendation": "Add semi-annual alarm testing to the PM plan with biomedical sign-off.",
                "risk_score": 22,
                "tags": ["medical gas", "alarms"],
            },
            {
                "id": "F-2024-008",
                "title": "Pharmacy stock reconciliation variances",
                "description": "Monthly stock counts showed unexplained variances on controlled medicines.",
                "severity": "High",
                "status": "Deferred",
                "department": "Finance",
                "project_name": "Cityline Medical Centre",
                "project_type": "Hospital",
                "audit_year": 2024,
                "date_identified": "2024-09-15",
                "root_cause": "Dispensing system and inventory ledger are not integrated.",
                "recommendation": "Integrate dispensing data with the ledger and investigate variances weekly.",
                "risk_score": 17,
                "tags": ["inventory", "controlled medicines"],
            },
            {
                "id": "F-2023-001",
                "title": "Fire alarm zone map outdated",
                "description": "The fire alarm panel zone map did not reflect the renovated east wing.",
                "severity": "Medium",
                "status": "Closed",
                "department": "Engineering",
                "project_name": "Grand Harbour Hotel",
                "project_type": "Hotel",
                "audit_year": 2023,
                "date_identified": "2023-10-04",
                "root_cause": "As-built drawings not handed over after renovation.",
                "recommendation": "Require as-built handover before renovation close-out.",
                "risk_score": 10,
                "tags": ["fire safety"],
            },
            {
                "id": "F-2023-002",
                "title": "Playground surfacing worn below safety depth",
                "description": "Impact-absorbing surface under climbing frames measured below the minimum depth.",
                "severity": "High",
                "status": "Closed",
                "department": "Operations",
                "project_name": "Green Valley School",
                "project_type": "School",
                "audit_year": 2023,
                "date_identified": "2023-08-22",
                "root_cause": "No inspection interval defined for outdoor play equipment.",
                "recommendation": "Inspect surfacing each term and top up before depth drops below limit.",
                "risk_score": 13,
                "tags": ["child safety"],
            },
            {
                "id": "F-2025-001",
                "title": "Shared administrator accounts on POS servers",
                "description": "Point-of-sale servers used a shared administrator login known to five contractors.",
                "severity": "Critical",
                "status": "Open",
                "department": "IT",
                "project_name": "Northgate Mall",
                "project_type": "Mall",
                "audit_year": 2025,
                "date_identified": "2025-02-11",
                "root_cause": "Contractor onboarding did not issue named accounts.",
                "recommendation": "Issue named accounts with MFA and rotate the shared credential.",
                "risk_score": 21,
                "tags": ["access control", "contractors"],
            },
            {
                "id": "F-2025-002",
                "title": "Backups not restored in testing",
                "description": "Nightly backups of the tenant billing system have never been test-restored.",
                "severity": "High",
                "status": "In Progress",
                "department": "IT",
                "project_name": "Northgate Mall",
                "project_type": "Mall",
                "audit_year": 2025,
                "date_identified": "2025-02-12",
                "root_cause": "Backup runbook lacks a restore test step.",
                "recommendation": "Run quarterly restore tests and record recovery time.",
                "risk_score": 15,
                "tags": ["backup", "continuity"],
            },
            {
                "id": "F-2025-003",
                "title": "Sprinkler valves found closed after fit-out",
                "description": "Two sprinkler isolation valves remained closed after a tenant fit-out on level 2.",
                "severity": "Critical",
                "status": "Closed",
                "department": "Engineering",
                "project_name": "Sunrise Residence",
                "project_type": "Apartment",
                "audit_year": 2025,
                "date_identified": "2025-03-03",
                "root_cause": "No permit-to-work close-out check for fire systems.",
                "recommendation": "Add valve position checks to the permit-to-work close-out.",
                "risk_score": 23,
                "tags": ["fire safety", "sprinkler"],
            },
            {
                "id": "F-2025-004",
                "title": "Service charge invoices issued late",
                "description": "Quarterly service charge invoices were issued up to 45 days late.",
                "severity": "Low",
                "status": "Open",
                "department": "Finance",
                "project_name": "Sunrise Residence",
                "project_type": "Apartment",
                "audit_year": 2025,
                "date_identified": "2025-04-17",
                "root_cause": "Manual invoice preparation from spreadsheets.",
                "recommendation": "Automate invoice generation from the tenancy system.",
                "risk_score": 5,
                "tags": ["billing"],
            },
        ]

        return [Finding.from_dict(data) for data in mock_data]
