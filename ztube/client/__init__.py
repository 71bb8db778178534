"""HTTP clients for the ztube API."""

from .membership import DefaultPlaylistMembership, MembershipState

__all__ = ["DefaultPlaylistMembership", "MembershipState"]
