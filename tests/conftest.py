import os
import sys

# Ensure project root is in sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from approvals import airtable_client
from approvals.config import settings
from approvals.field_schema import reset_default_schema


@pytest.fixture(autouse=True)
def _reset_config():
    for key in [
        "AIRTABLE_API_KEY",
        "CONTROL_BASE_ID",
        "CONTROL_TABLE_NAME",
        "GHL_PIT",
        "PIT",
        "VITE_PIT",
        "GHL_LOCATION_ID",
        "FEATURED_UPGRADE_FIELD_ID",
        "PROFILE_COMPLETE_FIELD_ID",
        "CRM_LINK_TEMPLATE",
        "ADMIN_PASSWORD_HASH",
        "FIELD_DEFINITIONS_CSV",
        "SECTION_ORDER_CSV",
    ]:
        os.environ.pop(key, None)
    settings.cache_clear()
    reset_default_schema()
    airtable_client.reset_tables()
    yield
    settings.cache_clear()
    reset_default_schema()
    airtable_client.reset_tables()
