from abc import ABC, abstractmethod
import numpy as np


class BaseSink(ABC):
    """
    Abstract base class for PCM output sinks.

    Frames are int16 arrays shaped (N, 2) at 48 kHz.
    """

    @abstractmethod
    def write(self, frame: np.ndarray) -> None:
        """
        Write a PCM frame to the output.

        Args:
            frame: numpy array containing PCM audio data
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Close the output and release resources.
        """
        ...
