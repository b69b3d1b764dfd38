import numpy as np


class Mixer:
    """
    Gain and summing for int16 PCM frames.

    ARCHITECTURAL INVARIANT: No timing logic. Frames are processed the moment
    they are handed in; the player's output loop owns pacing.
    """

    def combine(self, layers, frame_shape=(1024, 2)) -> np.ndarray:
        """
        Sum several (frame, gain) layers into one frame.

        Shorter frames (the tail of a stream) are padded with silence.
        No layers yields a silent frame.
        """
        out = np.zeros(frame_shape, dtype=np.float32)
        for frame, gain in layers:
            if frame is None or gain == 0.0:
                continue
            samples = min(len(frame), frame_shape[0])
            out[:samples] += frame[:samples].astype(np.float32) * float(gain)
        np.clip(out, -32768.0, 32767.0, out=out)
        return out.astype(np.int16)
