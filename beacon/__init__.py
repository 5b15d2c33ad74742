"""Beacon — endpoint discovery for uptime monitoring.

Quickstart::

    from beacon.discovery import EndpointDiscovery
    from beacon.models import DefaultProbeSet

    discovery = EndpointDiscovery(DefaultProbeSet(ids=(1, 2)))
    endpoint = await discovery.discover("example.com")
    for check in endpoint.checks:
        print(check.to_dict())
"""

__version__ = "1.0.0"
