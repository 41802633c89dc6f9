"""
Reaction channels and the integer reaction identifier codec.

Every interaction the generator can produce is one of five frozen
dataclass variants. A variant packs into a single integer identifier and
back:

- ``0``: inverse beta decay
- ``1..4``: elastic scattering on electrons, ``1 + flavor``
- ``3000 + (flavor+1)*100 + (nucleon+1)*10 + (level+1)``: neutral-current
  oxygen de-excitation
- ``(flavor+1)*100000 + (state+1)*10000 + (level+1)*10 + (channel+1)``:
  charged-current oxygen; the unresolved sub-channel aggregate occupies the
  level field 30 and channel field 9 (``... + 309``)

Each field lives in its own decimal digit group, so encode checks that no
value can carry into the next group.
"""

from dataclasses import dataclass
from enum import IntEnum
from functools import cache
from typing import ClassVar, Union

import numpy as np

from .constants import (
    PDG_NUE, PDG_NUEBAR, PDG_NUMU, PDG_NUMUBAR, PDG_PROTON, PDG_NEUTRON,
    Mp, Mn, CC_EXCITATION_LEVELS, CC_DECAY_CHANNELS, NC_EXCITATION_LEVELS,
)
from .errors import ChannelFieldError, UnrecognizedChannelError


class Flavor(IntEnum):
    """Neutrino species tracked by the generator."""

    NUE = 0
    NUEBAR = 1
    NUX = 2
    NUXBAR = 3

    @property
    def pdg(self):
        return (PDG_NUE, PDG_NUEBAR, PDG_NUMU, PDG_NUMUBAR)[self]

    @property
    def label(self):
        return ('nue', 'nuebar', 'nux', 'nuxbar')[self]

    @property
    def is_antineutrino(self):
        return self in (Flavor.NUEBAR, Flavor.NUXBAR)


class Nucleon(IntEnum):
    """Nucleon ejected in a neutral-current oxygen interaction."""

    PROTON = 0
    NEUTRON = 1

    @property
    def pdg(self):
        return PDG_PROTON if self is Nucleon.PROTON else PDG_NEUTRON

    @property
    def mass(self):
        return Mp if self is Nucleon.PROTON else Mn

    @property
    def residual(self):
        return '15N' if self is Nucleon.PROTON else '15O'


def _flavor(value, allowed=tuple(Flavor)):
    try:
        flavor = Flavor(value)
    except ValueError as exc:
        raise ChannelFieldError(f"unknown flavor {value!r}") from exc
    if flavor not in allowed:
        raise ChannelFieldError(f"flavor {flavor.name} not allowed here")
    return flavor


def _index(value, size, name):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ChannelFieldError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value < size:
        raise ChannelFieldError(f"{name}={value} outside [0, {size})")
    return int(value)


_ELECTRON_FLAVORS = (Flavor.NUE, Flavor.NUEBAR)


@dataclass(frozen=True)
class InverseBetaDecay:
    """nu_e-bar + p -> e+ + n"""

    family: ClassVar[str] = 'ibd'

    @property
    def flavor(self):
        return Flavor.NUEBAR


@dataclass(frozen=True)
class ElasticScattering:
    """nu + e -> nu + e"""

    flavor: Flavor
    family: ClassVar[str] = 'elastic'

    def __post_init__(self):
        object.__setattr__(self, 'flavor', _flavor(self.flavor))


@dataclass(frozen=True)
class ChargedCurrentOxygen:
    """nu_e(-bar) + 16O -> e-(+) + 16F(16N)* resolved into level and decay channel."""

    flavor: Flavor
    nuclear_state: int
    excitation_level: int
    decay_channel: int
    family: ClassVar[str] = 'cc_oxygen'

    def __post_init__(self):
        object.__setattr__(self, 'flavor', _flavor(self.flavor, _ELECTRON_FLAVORS))
        state = _index(self.nuclear_state, len(CC_EXCITATION_LEVELS), 'nuclear_state')
        object.__setattr__(self, 'nuclear_state', state)
        object.__setattr__(self, 'excitation_level', _index(
            self.excitation_level, CC_EXCITATION_LEVELS[state], 'excitation_level'))
        object.__setattr__(self, 'decay_channel', _index(
            self.decay_channel, CC_DECAY_CHANNELS, 'decay_channel'))


@dataclass(frozen=True)
class UnresolvedSubChannel:
    """Charged-current oxygen sub-reactions summed per nuclear state."""

    flavor: Flavor
    nuclear_state: int
    family: ClassVar[str] = 'cc_oxygen_sub'

    def __post_init__(self):
        object.__setattr__(self, 'flavor', _flavor(self.flavor, _ELECTRON_FLAVORS))
        object.__setattr__(self, 'nuclear_state', _index(
            self.nuclear_state, len(CC_EXCITATION_LEVELS), 'nuclear_state'))


@dataclass(frozen=True)
class NeutralCurrentOxygen:
    """nu + 16O -> nu + N + X* followed by gamma de-excitation."""

    flavor: Flavor
    ejected_nucleon: Nucleon
    excitation_level: int
    family: ClassVar[str] = 'nc_oxygen'

    def __post_init__(self):
        object.__setattr__(self, 'flavor', _flavor(self.flavor))
        try:
            nucleon = Nucleon(self.ejected_nucleon)
        except ValueError as exc:
            raise ChannelFieldError(f"unknown nucleon {self.ejected_nucleon!r}") from exc
        object.__setattr__(self, 'ejected_nucleon', nucleon)
        object.__setattr__(self, 'excitation_level', _index(
            self.excitation_level, NC_EXCITATION_LEVELS[nucleon], 'excitation_level'))


ReactionChannel = Union[
    InverseBetaDecay, ElasticScattering, ChargedCurrentOxygen,
    UnresolvedSubChannel, NeutralCurrentOxygen,
]

IBD_CODE = 0
NC_REACTION_DIGIT = 3
NC_CODE_MIN = 1000
CC_CODE_MIN = 10000
UNRESOLVED_LEVEL_FIELD = 30
UNRESOLVED_CHANNEL_FIELD = 9


def _digit_field(value, limit, name):
    if value > limit:
        raise ChannelFieldError(
            f"{name} field {value} exceeds its digit group (max {limit})"
        )
    return value


def _encode_ibd(channel):
    return IBD_CODE


def _encode_elastic(channel):
    return 1 + int(channel.flavor)


def _encode_nc(channel):
    flavor = _digit_field(int(channel.flavor) + 1, 9, 'flavor')
    nucleon = _digit_field(int(channel.ejected_nucleon) + 1, 9, 'nucleon')
    level = _digit_field(channel.excitation_level + 1, 9, 'excitation_level')
    return NC_REACTION_DIGIT * 1000 + flavor * 100 + nucleon * 10 + level


def _encode_cc_fields(flavor, state, level_field, channel_field):
    flavor_field = _digit_field(int(flavor) + 1, 2, 'flavor')
    state_field = _digit_field(state + 1, 9, 'nuclear_state')
    level_field = _digit_field(level_field, 999, 'excitation_level')
    channel_field = _digit_field(channel_field, 9, 'decay_channel')
    return flavor_field * 100000 + state_field * 10000 + level_field * 10 + channel_field


def _encode_cc(channel):
    if channel.excitation_level + 1 == UNRESOLVED_LEVEL_FIELD:
        raise ChannelFieldError("excitation level collides with the unresolved sub-channel field")
    return _encode_cc_fields(channel.flavor, channel.nuclear_state,
                             channel.excitation_level + 1, channel.decay_channel + 1)


def _encode_unresolved(channel):
    return _encode_cc_fields(channel.flavor, channel.nuclear_state,
                             UNRESOLVED_LEVEL_FIELD, UNRESOLVED_CHANNEL_FIELD)


_ENCODERS = {
    InverseBetaDecay: _encode_ibd,
    ElasticScattering: _encode_elastic,
    NeutralCurrentOxygen: _encode_nc,
    ChargedCurrentOxygen: _encode_cc,
    UnresolvedSubChannel: _encode_unresolved,
}


def encode(channel):
    """Pack a reaction channel into its integer identifier.

    Parameters
    ----------
    channel : ReactionChannel
        Any of the reaction channel variants

    Returns
    -------
    int
        Reaction identifier

    Raises
    ------
    ChannelFieldError
        If ``channel`` is not a reaction channel or a field would overflow
        its digit group
    """
    encoder = _ENCODERS.get(type(channel))
    if encoder is None:
        raise ChannelFieldError(f"not a reaction channel: {channel!r}")
    return encoder(channel)


def _decode_nc(code):
    reaction, rest = divmod(code, 1000)
    if reaction != NC_REACTION_DIGIT:
        raise UnrecognizedChannelError(code, f"reaction digit {reaction} is not {NC_REACTION_DIGIT}")
    flavor_field, rest = divmod(rest, 100)
    nucleon_field, level_field = divmod(rest, 10)
    if min(flavor_field, nucleon_field, level_field) < 1:
        raise UnrecognizedChannelError(code, "empty field")
    try:
        channel = NeutralCurrentOxygen(flavor_field - 1, nucleon_field - 1, level_field - 1)
    except ChannelFieldError as exc:
        reason = str(exc)
    else:
        return channel
    raise UnrecognizedChannelError(code, reason)


def _decode_cc(code):
    flavor_field, rest = divmod(code, 100000)
    state_field, rest = divmod(rest, 10000)
    level_field, channel_field = divmod(rest, 10)
    if min(flavor_field, state_field, level_field, channel_field) < 1:
        raise UnrecognizedChannelError(code, "empty field")
    try:
        if level_field == UNRESOLVED_LEVEL_FIELD and channel_field == UNRESOLVED_CHANNEL_FIELD:
            channel = UnresolvedSubChannel(flavor_field - 1, state_field - 1)
        else:
            channel = ChargedCurrentOxygen(flavor_field - 1, state_field - 1,
                                           level_field - 1, channel_field - 1)
    except ChannelFieldError as exc:
        reason = str(exc)
    else:
        return channel
    raise UnrecognizedChannelError(code, reason)


def decode(code):
    """Unpack an integer reaction identifier.

    Parameters
    ----------
    code : int
        Reaction identifier

    Returns
    -------
    ReactionChannel
        The unique variant encoded by ``code``

    Raises
    ------
    UnrecognizedChannelError
        If ``code`` lies outside the three identifier ranges or any decoded
        field is outside its domain
    """
    if isinstance(code, bool) or not isinstance(code, (int, np.integer)):
        raise UnrecognizedChannelError(code, "not an integer")
    code = int(code)
    if code == IBD_CODE:
        return InverseBetaDecay()
    if 1 <= code <= len(Flavor):
        return ElasticScattering(Flavor(code - 1))
    if NC_CODE_MIN < code < CC_CODE_MIN:
        return _decode_nc(code)
    if code >= CC_CODE_MIN:
        return _decode_cc(code)
    raise UnrecognizedChannelError(code)


@cache
def channel_catalogue():
    """All reaction channels in the order the rate integration visits them."""
    channels = [InverseBetaDecay()]
    channels.extend(ElasticScattering(flavor) for flavor in Flavor)
    for flavor in _ELECTRON_FLAVORS:
        for state, n_levels in enumerate(CC_EXCITATION_LEVELS):
            for level in range(n_levels):
                for ch in range(CC_DECAY_CHANNELS):
                    channels.append(ChargedCurrentOxygen(flavor, state, level, ch))
    for flavor in _ELECTRON_FLAVORS:
        for state in range(len(CC_EXCITATION_LEVELS)):
            channels.append(UnresolvedSubChannel(flavor, state))
    for flavor in Flavor:
        for nucleon in Nucleon:
            for level in range(NC_EXCITATION_LEVELS[nucleon]):
                channels.append(NeutralCurrentOxygen(flavor, nucleon, level))
    return tuple(channels)


def channel_label(channel):
    """Reporting label grouping channels the way summaries print them."""
    if channel.family == 'ibd':
        return 'nuebar + p'
    if channel.family == 'elastic':
        return f"{channel.flavor.label} + e"
    if channel.family in ('cc_oxygen', 'cc_oxygen_sub'):
        return f"{channel.flavor.label} + O (CC)"
    nucleon = channel.ejected_nucleon
    return f"{channel.flavor.label} + O (NC: {'p' if nucleon is Nucleon.PROTON else 'n'}+{nucleon.residual})"


def neutrino_pdg(channel):
    """Particle code of the incident neutrino of a channel."""
    return channel.flavor.pdg


__all__ = [
    'Flavor', 'Nucleon',
    'InverseBetaDecay', 'ElasticScattering', 'ChargedCurrentOxygen',
    'UnresolvedSubChannel', 'NeutralCurrentOxygen', 'ReactionChannel',
    'IBD_CODE', 'NC_CODE_MIN', 'CC_CODE_MIN',
    'encode', 'decode', 'channel_catalogue', 'channel_label', 'neutrino_pdg',
]
