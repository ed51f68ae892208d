class AllocationError(ValueError):
    """Base class for configuration-time allocation failures."""


class InvalidBucketRange(AllocationError):
    pass


class BucketAlreadyUsed(AllocationError):
    def __init__(self, bucket: int, owner: str):
        self.bucket = bucket
        self.owner = owner
        super().__init__(f"bucket {bucket} is already used by experiment '{owner}'")


class DuplicateBucketInRequest(AllocationError):
    def __init__(self, bucket: int):
        self.bucket = bucket
        super().__init__(f"bucket {bucket} is repeated across the requested ranges")


class InsufficientBuckets(AllocationError):
    def __init__(self, experiment_id: str, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"not enough free buckets for experiment '{experiment_id}': "
            f"required {required}, available {available}"
        )


class ExperimentAlreadyRegistered(AllocationError):
    pass


class InvalidGroupTable(AllocationError):
    pass


class ConfigurationFrozen(RuntimeError):
    """Raised when configuration is mutated after the SDK has been frozen."""
