"""Typed domain errors surfaced to callers as client errors."""


class VenueDomainError(Exception):
    """Base class for venue directory errors."""


class VenueNotFoundError(VenueDomainError):
    def __init__(self, venue_id):
        self.venue_id = venue_id
        super().__init__(f"Venue with ID {venue_id} not found")


class PhotoNotFoundError(VenueDomainError):
    def __init__(self, photo_id, venue_id=None):
        self.photo_id = photo_id
        self.venue_id = venue_id
        if venue_id is not None:
            message = f"Venue photo with ID {photo_id} not found for venue {venue_id}"
        else:
            message = f"Venue photo with ID {photo_id} not found"
        super().__init__(message)


class PermissionDeniedError(VenueDomainError):
    """Actor lacks the role required for the operation."""


class InvalidSearchError(VenueDomainError):
    """Search request is missing required parameters or is out of range."""


class VenueValidationError(VenueDomainError, ValueError):
    """Caller-supplied data was rejected."""


class DuplicateReviewError(PermissionDeniedError):
    def __init__(self, venue_id, user_id):
        self.venue_id = venue_id
        self.user_id = user_id
        super().__init__(f"User {user_id} has already reviewed venue {venue_id}")


class ExternalDataUnavailableError(VenueDomainError):
    """An upstream provider returned nothing for a request that needs its data."""


class MissingGooglePlaceError(VenueNotFoundError):
    """Venue exists but has no Google place id to refresh from."""

    def __init__(self, venue_id):
        super().__init__(venue_id)
        self.args = (f"Venue {venue_id} does not have a Google place id to refresh from",)
