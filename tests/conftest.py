"""
Register pytest plugins, fixtures, and hooks to be used during test execution.

All fixtures are organized in the fixtures/ directory for better maintainability.

Docs: https://stackoverflow.com/questions/34466027/in-pytest-what-is-the-use-of-conftest-py-files
"""

import sys
from pathlib import Path

THIS_DIR = Path(__file__).parent
TESTS_DIR_PARENT = (THIS_DIR / "..").resolve()

# add the parent directory of tests/ to PYTHONPATH
# so that we can use "from tests.<module> import ..." in our tests and fixtures
sys.path.insert(0, str(TESTS_DIR_PARENT))

# Register all fixture modules
# Fixtures are automatically discovered from these modules
pytest_plugins = [
    # In-memory cluster and connection factory
    "tests.fixtures.database_fixtures",
    # Secrets Manager / RDS client mocks
    "tests.fixtures.aws_fixtures",
    # Settings, Lambda context and ProvisionerContext
    "tests.fixtures.context_fixtures",
    # Lifecycle event builders
    "tests.fixtures.event_fixtures",
]
