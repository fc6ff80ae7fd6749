class TenantStoreUnavailable(Exception):
    """The company store could not be read. Retryable; never a denial."""

    retryable = True
