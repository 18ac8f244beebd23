"""Opinion exchange integration."""

from ebbtide.integrations.opinion.client import (
    MalformedResponseError,
    OpinionApiError,
    OpinionClient,
    OpinionClientError,
)
from ebbtide.integrations.opinion.types import OpinionSettings

__all__ = [
    "OpinionClient",
    "OpinionSettings",
    "OpinionClientError",
    "OpinionApiError",
    "MalformedResponseError",
]
