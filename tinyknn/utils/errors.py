class TinyKNNError(Exception):
    pass

class InvalidInputError(TinyKNNError):
    pass

class DimensionMismatchError(InvalidInputError):
    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Feature vector has {actual} values, expected {expected}")

class InvalidFeatureError(InvalidInputError):
    pass

class InvalidKError(InvalidInputError):
    def __init__(self, k, max_k=None) -> None:
        self.k = k
        self.max_k = max_k
        if max_k is None:
            message = f"max_k must be a positive integer, got {k!r}"
        else:
            message = f"k must be in the range (0, {max_k}], got {k!r}"
        super().__init__(message)

class EmptyIndexError(TinyKNNError):
    pass

class NotInitializedError(TinyKNNError):
    pass

class UnknownIdError(TinyKNNError, AssertionError):
    def __init__(self, label_id: int) -> None:
        self.label_id = label_id
        super().__init__(f"Label id {label_id} is not registered")

class StorageError(TinyKNNError):
    pass

class ArchiveIOError(StorageError, OSError):
    pass

class CorruptArchiveError(StorageError):
    pass

class ConfigError(TinyKNNError):
    pass
