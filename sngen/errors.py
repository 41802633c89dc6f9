"""
Exceptions raised by the event generator.

Kinematic failures are recoverable (the event is skipped); an exhausted
rejection loop is fatal for the run because the envelope search has to be
re-tuned.
"""


class GeneratorError(Exception):
    """Base class of all generator errors."""


class UnrecognizedChannelError(GeneratorError, ValueError):
    """Reaction identifier does not map to any reaction channel."""

    def __init__(self, code, reason="outside all identifier ranges"):
        self.code = code
        super().__init__(f"unrecognized reaction identifier {code!r}: {reason}")


class ChannelFieldError(GeneratorError, ValueError):
    """A reaction channel field is outside its declared domain."""


class KinematicsError(GeneratorError):
    """No physically valid kinematic region for the requested interaction."""

    def __init__(self, channel, neutrino_energy, reason):
        self.channel = channel
        self.neutrino_energy = neutrino_energy
        super().__init__(
            f"no valid kinematics for {channel} at E_nu={neutrino_energy:.4f} MeV: {reason}"
        )


class EnvelopeTooLowError(GeneratorError):
    """Rejection sampling did not accept a draw within the iteration cap."""

    def __init__(self, channel, neutrino_energy, envelope, iterations):
        self.channel = channel
        self.neutrino_energy = neutrino_energy
        self.envelope = envelope
        self.iterations = iterations
        super().__init__(
            f"rejection sampling for {channel} at E_nu={neutrino_energy:.4f} MeV "
            f"accepted nothing in {iterations} draws (envelope {envelope:.4e}); "
            "increase the envelope scan resolution"
        )


__all__ = [
    'GeneratorError',
    'UnrecognizedChannelError',
    'ChannelFieldError',
    'KinematicsError',
    'EnvelopeTooLowError',
]
