"""
Errors raised by slug generation and uniqueness resolution.

Unlike uploads, slug operations raise: a record cannot be persisted without
its slug, so the caller has to handle the failure either way.
"""


class SlugError(Exception):
    """Base class for slug failures."""

    retryable = False


class SlugInputError(SlugError, ValueError):
    """Entity kind or attributes cannot produce a slug."""


class SlugProbeError(SlugError):
    """
    The uniqueness probe against the record store failed.

    The slug is neither known to be free nor taken, so the whole resolution
    can safely be attempted again.
    """

    retryable = True

    def __init__(self, table: str, slug: str, cause: BaseException) -> None:
        super().__init__(f"Could not check slug '{slug}' in {table}: {cause}")
        self.table = table
        self.slug = slug
        self.cause = cause


class SlugCollisionExhausted(SlugError):
    """Every suffixed candidate up to the attempt limit is already taken."""

    def __init__(self, table: str, candidate: str, attempts: int) -> None:
        super().__init__(
            f"No free slug for '{candidate}' in {table} after {attempts} attempts"
        )
        self.table = table
        self.candidate = candidate
        self.attempts = attempts
