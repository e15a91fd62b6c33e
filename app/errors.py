"""
Error taxonomy for the blog pipeline.

- AuthenticationRequired: no stored Google credentials, or they were rejected
- UpstreamUnavailable: transient Drive / OAuth API failure
- NotFound: a Drive document or a post does not exist
- ConfigError: a required setting is missing or invalid
"""


class BlogPipelineError(Exception):
    """Base class for all pipeline errors."""


class AuthenticationRequired(BlogPipelineError):
    """Google credentials are missing or no longer valid."""


class UpstreamUnavailable(BlogPipelineError):
    """The Google API could not be reached or returned a server error."""


class NotFound(BlogPipelineError):
    """The requested document or post does not exist."""


class ConfigError(BlogPipelineError):
    """A required configuration value is missing."""
