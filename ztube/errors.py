"""Exception types shared across ztube."""


class ZTubeError(Exception):
    """Base class for ztube errors."""


class SourceFetchError(ZTubeError):
    """A single content source could not be fetched or parsed."""

    def __init__(self, source_id: str, reason: str = ""):
        self.source_id = source_id
        self.reason = reason
        message = f"Source {source_id!r} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedItemError(ZTubeError):
    """A raw content record lacks a required field."""


class BlockListUnavailable(ZTubeError):
    """The block list could not be read from persistence."""


class MembershipToggleError(ZTubeError):
    """Adding or removing an item from the default playlist failed."""


class NoSourcesError(ZTubeError, ValueError):
    """Aggregation was requested without any sources."""


class PlaylistNotFoundError(ZTubeError, LookupError):
    """The requested playlist does not exist."""

    def __init__(self, playlist_id: int):
        self.playlist_id = playlist_id
        super().__init__(f"Playlist with ID {playlist_id} not found")


class DefaultPlaylistProtectedError(ZTubeError):
    """The default playlist cannot be deleted."""


class DuplicatePlaylistNameError(ZTubeError):
    """A playlist with the same name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Playlist with name "{name}" already exists')
