"""
Error taxonomy for the ETL pipeline.

Only `RetriableError` (and the network-class errors each fetcher classifies
as transient) is ever re-attempted by the retry engine. Everything else
propagates on the first failure.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the pipeline itself."""


class RetriableError(PipelineError):
    """A transient failure worth another attempt after backoff."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(PipelineError):
    """Required configuration (usually a credential) is missing."""


class FeedFetchError(PipelineError):
    """Terminal HTTP failure while downloading a feed."""


class FeedParseError(PipelineError):
    """The downloaded document is not a usable RSS/Atom feed."""


class MarketDataError(PipelineError):
    """Terminal failure from the market-data provider."""


class EnrichmentError(PipelineError):
    """Base class for per-item enrichment failures."""


class EnrichmentParseError(EnrichmentError):
    """The completion content was not valid JSON."""


class EnrichmentValidationError(EnrichmentError):
    """The completion JSON did not satisfy the enrichment schema."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Enrichment payload failed validation: {detail}")
        self.detail = detail
