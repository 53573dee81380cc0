from abc import ABC, abstractmethod


class ComputeSession(ABC):
    """
    An abstract base class for the process-wide compute session.
    Constructed explicitly, torn down explicitly (or via the context manager).
    """
    name: str

    @property
    @abstractmethod
    def double_precision(self) -> bool: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
