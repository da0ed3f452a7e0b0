#!/usr/bin/env python3
"""
Wrapper script to start the findings assistant API.
Reads the port from the PORT environment variable, as hosting platforms set it.
"""
import os
import sys
import subprocess


def main():
    port = os.environ.get('PORT', '8000')

    cmd = [
        sys.executable, '-m', 'uvicorn',
        'findings_assistant.main:app',
        '--host', '0.0.0.0',
        '--port', port
    ]

    print(f"Starting findings assistant on port {port}")
    print(f"Command: {' '.join(cmd)}")

    subprocess.run(cmd, check=True)


if __name__ == "__main__":
    main()
