# entity_config.py
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

import yaml

from findings_assistant.core import settings

logger = logging.getLogger(__name__)


@dataclass
class VocabularyEntry:
    """A canonical vocabulary value and the surface forms that refer to it"""

    name: str
    aliases: List[str] = field(default_factory=list)

    def terms(self) -> List[str]:
        return [self.name] + [alias for alias in self.aliases if alias]


@dataclass
class Mention:
    """A vocabulary hit inside a query"""

    canonical: str
    text: str
    start: int
    end: int


def _is_acronym(term: str) -> bool:
    # Short all-caps terms such as "IT" must not match ordinary words like "it"
    return len(term) <= 3 and term.isupper()


def _compile_entry(entry: VocabularyEntry) -> List[Pattern]:
    patterns = []
    # Longest terms first so "landed house" wins over "house"
    for term in sorted(set(entry.terms()), key=len, reverse=True):
        flags = 0 if _is_acronym(term) else re.IGNORECASE
        patterns.append(re.compile(r"(?<![\w&])" + re.escape(term) + r"(?![\w&])", flags))
    return patterns


class EntityConfigLoader:
    """Loads and manages the findings vocabulary from YAML files"""

    SECTIONS = ("departments", "project_types", "severities", "statuses")

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or settings.ENTITIES_CONFIG_PATH
        self.departments: List[VocabularyEntry] = []
        self.project_types: List[VocabularyEntry] = []
        self.severities: List[VocabularyEntry] = []
        self.statuses: List[VocabularyEntry] = []
        self.projects: List[str] = []
        self.stopwords: List[str] = []
        self._patterns: Dict[str, List[Tuple[str, List[Pattern]]]] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file"""
        try:
            if not os.path.exists(self.config_path):
                logger.warning(
                    f"Entity config file not found at {self.config_path}, using defaults"
                )
                self._load_defaults()
            else:
                with open(self.config_path, encoding="utf-8") as file:
                    config = yaml.safe_load(file) or {}

                for section in self.SECTIONS:
                    setattr(
                        self,
                        section,
                        [
                            VocabularyEntry(
                                name=str(item["name"]),
                                aliases=[str(alias) for alias in item.get("aliases", [])],
                            )
                            for item in config.get(section, [])
                        ],
                    )
                self.projects = [str(name) for name in config.get("projects", [])]
                self.stopwords = [str(word).lower() for word in config.get("stopwords", [])]

                logger.info(
                    f"Loaded entity config: {len(self.departments)} departments, "
                    f"{len(self.project_types)} project types, {len(self.projects)} projects"
                )

        except (OSError, yaml.YAMLError, KeyError, TypeError) as e:
            logger.error(f"Error loading entity config: {str(e)}")
            self._load_defaults()

        self._compile_patterns()

    def _load_defaults(self) -> None:
        """Load minimal default configuration if file is not available"""
        self.departments = [
            VocabularyEntry("IT", ["information technology"]),
            VocabularyEntry("HR", ["human resources"]),
            VocabularyEntry("Finance", []),
            VocabularyEntry("Procurement", ["purchasing"]),
            VocabularyEntry("Operations", ["ops"]),
        ]
        self.project_types = [
            VocabularyEntry("Hotel", ["hotels"]),
            VocabularyEntry("Apartment", ["apartments", "flat"]),
            VocabularyEntry("Hospital", ["hospitals"]),
            VocabularyEntry("Office Building", ["office"]),
        ]
        self.severities = [
            VocabularyEntry("Critical", ["urgent", "severe"]),
            VocabularyEntry("High", ["important"]),
            VocabularyEntry("Medium", ["moderate"]),
            VocabularyEntry("Low", ["minor"]),
        ]
        self.statuses = [
            VocabularyEntry("Open", ["pending"]),
            VocabularyEntry("In Progress", ["ongoing"]),
            VocabularyEntry("Closed", ["resolved", "done", "completed", "fixed"]),
            VocabularyEntry("Deferred", ["postponed", "delayed"]),
        ]
        self.projects = []
        self.stopwords = []

    def _compile_patterns(self) -> None:
        self._patterns = {
            section: [(entry.name, _compile_entry(entry)) for entry in getattr(self, section)]
            for section in self.SECTIONS
        }

    def find_mentions(self, query: str, section: str) -> List[Mention]:
        """Vocabulary hits of one section, ordered by position in the query.

        Overlapping hits keep the earliest, longest one.
        """
        hits = []
        for canonical, patterns in self._patterns[section]:
            for pattern in patterns:
                for match in pattern.finditer(query):
                    hits.append(Mention(canonical, match.group(0), match.start(), match.end()))

        hits.sort(key=lambda hit: (hit.start, -(hit.end - hit.start)))
        mentions: List[Mention] = []
        for hit in hits:
            if mentions and hit.start < mentions[-1].end:
                continue
            mentions.append(hit)
        return mentions

    def canonical_value(self, section: str, value: str) -> Optional[str]:
        """Canonical name for a value of a section, matched case-insensitively"""
        value_lower = value.strip().lower()
        for entry in getattr(self, section):
            if any(term.lower() == value_lower for term in entry.terms()):
                return entry.name
        return None

    def vocabulary_terms(self) -> List[str]:
        """Every lowercased term across the sections"""
        terms = []
        for section in self.SECTIONS:
            for entry in getattr(self, section):
                terms.extend(term.lower() for term in entry.terms())
        return terms


# Global instance, created on first use
entity_config: Optional[EntityConfigLoader] = None


def get_entity_config() -> EntityConfigLoader:
    """Get the global entity configuration instance"""
    global entity_config
    if entity_config is None:
        entity_config = EntityConfigLoader()
    return entity_config
