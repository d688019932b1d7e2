"""
Pytest configuration.

Puts the project root on the Python path so tests can import the api,
domain, repositories and services packages, and the shared fakes module
beside this file.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))
