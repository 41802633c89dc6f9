"""
Core modules of the supernova neutrino event generator.

This package contains modular components for:
- Physical constants, detector geometry and nuclear tables
- Reaction channels and the reaction identifier codec
- Run configuration (grid, mixing, generator settings)
- Flux and cross-section models
- Rate integration and Poisson event sampling
- Lepton kinematics by rejection sampling
- Final-state assembly
- Live-time normalisation and relic IBD events
- Utility tools (timing, logging)
"""

from .constants import *
from .errors import *
from .channels import *
from .config import *
from .random_source import *
from .transformations import *
from .sampling import *
from .flux_models import *
from .cross_sections import *
from .cross_section_grid import *
from .event_sampling import *
from .rate_integration import *
from .kinematics import *
from .final_state import *
from .livetime import *
from .relic import *
from .tools import *

__all__ = [
    # Constants
    'pi', 'Me', 'Mp', 'Mn', 'DeltaM', 'IBD_THRESHOLD', 'DETECTOR_VOLUMES',
    'REFERENCE_DISTANCE_KPC', 'PDG_NUEBAR', 'PDG_POSITRON', 'PDG_NEUTRON',

    # Errors
    'GeneratorError', 'UnrecognizedChannelError', 'ChannelFieldError',
    'KinematicsError', 'EnvelopeTooLowError',

    # Reaction channels
    'Flavor', 'Nucleon', 'InverseBetaDecay', 'ElasticScattering',
    'ChargedCurrentOxygen', 'UnresolvedSubChannel', 'NeutralCurrentOxygen',
    'ReactionChannel', 'encode', 'decode', 'channel_catalogue', 'channel_label',
    'neutrino_pdg',

    # Configuration
    'FLUX_FLAVORS', 'EnergyTimeGrid', 'MixingParameters', 'GeneratorConfig',
    'unit_vector',

    # Random stream
    'RandomSource',

    # Transformations
    'rotation_matrix', 'local_direction', 'convert_direction',
    'sample_isotropic_direction',

    # Sampling algorithms
    'RejectionDraw', 'scan_envelope', 'scan_envelope_2d', 'rejection_sample_1d',
    'rejection_sampling_2Dfunc',

    # Flux models
    'emitted_flavor', 'pinched_spectrum', 'flux_from_luminosity',
    'PinchedFluxModel', 'TabulatedFluxModel',

    # Cross sections
    'ES_COUPLINGS', 'ibd_total_sv', 'ibd_dsigma_dcos_vb', 'es_dsigma_dT',
    'es_dsigma_dcos', 'es_tmax', 'es_total', 'es_threshold_cos',
    'OxygenTables', 'StandardCrossSections', 'CrossSectionGrid',

    # Rates and event counts
    'RawEventRecord', 'EventStore', 'detector_volume', 'sample_vertex',
    'stochastic_round', 'EventCountSampler',
    'water_molecules', 'target_counts', 'ChannelTotals', 'IntegrationResult',
    'RateIntegrator',

    # Kinematics and final states
    'LeptonKinematics', 'KinematicsSampler',
    'ROLE_FLAGS', 'FinalStateParticle', 'VertexRecord', 'FinalStateEvent',
    'FinalStateBuilder',

    # Live time and relic events
    'RunPeriodLookup', 'TimeEventTable', 'expected_events_per_subrun',
    'subrun_tags', 'RelicResult', 'RelicIBDGenerator',

    # Utility tools
    'timer', 'setup_logging',
]
