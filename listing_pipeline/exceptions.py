"""Exceptions raised by the listing pipeline."""


class ListingPipelineError(Exception):
    """Base class for pipeline errors."""


class BusinessNotFoundError(ListingPipelineError):
    def __init__(self, business_id: str):
        super().__init__(f"Business not found: {business_id}")
        self.business_id = business_id


class AbrLookupError(ListingPipelineError):
    """The Australian Business Register returned an unusable response."""
