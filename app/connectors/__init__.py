"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.hubspot_connector import HubSpotConnector
from app.connectors.netsuite_connector import NetSuiteConnector, build_netsuite_auth
from app.connectors.officernd_connector import OfficeRnDConnector
from app.connectors.static_membership import (
    MembershipSource,
    MembershipTableError,
    StaticMembershipTable,
)

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "HubSpotConnector",
    "MembershipSource",
    "MembershipTableError",
    "NetSuiteConnector",
    "OfficeRnDConnector",
    "StaticMembershipTable",
    "build_netsuite_auth",
]
