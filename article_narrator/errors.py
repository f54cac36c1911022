"""Error taxonomy for the playback pipeline.

Every failure carries a human-readable message; the state machine surfaces
that message to the UI layer instead of raw engine exceptions.
"""


class NarrationError(Exception):
    """Base class for all playback pipeline failures."""

    kind = "narration_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptyInput(NarrationError):
    kind = "empty_input"


class UnsupportedBuffer(NarrationError):
    kind = "unsupported_buffer"


class WriteFailure(NarrationError):
    kind = "write_failure"


class StallTimeout(NarrationError):
    kind = "stall_timeout"


class ResourceActivationFailure(NarrationError):
    kind = "resource_activation_failure"


class PlayerConstructionFailure(NarrationError):
    kind = "player_construction_failure"


class SynthesisEngineFailure(NarrationError):
    """The speech engine raised or ended without producing audio."""

    kind = "synthesis_engine_failure"
