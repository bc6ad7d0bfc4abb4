"""QueryDesk Client Library: build queries, page results and manage templates."""

from querydesk.client.client import QueryDeskClient
from querydesk.client.session import QuerySession, RequestSequencer

__all__ = ["QueryDeskClient", "QuerySession", "RequestSequencer"]
