"""
Physical constants, detector geometry and nuclear tables used by the
supernova event generator.

Energies are in MeV, lengths in cm, times in seconds and cross sections
in cm^2 unless stated otherwise.
"""

import math

# Mathematical constant
pi = math.pi

# Fundamental constants
GFermi = 1.1663787e-11  # Fermi constant, MeV^-2
hbarc2 = 3.8937937e-22  # (hbar c)^2, MeV^2 cm^2
avogadro = 6.02214076e23  # 1/mol
cos_cabibbo = 0.97420  # cos(theta_C)
gA_nucleon = 1.2701  # axial coupling of the nucleon
ibd_radiative = 0.024  # inner radiative correction for IBD

# Particle masses (MeV)
Me = 0.51099895
Mp = 938.27208816
Mn = 939.56542052
DeltaM = Mn - Mp
Mnucleon = 0.5 * (Mp + Mn)

# Electroweak parameters for neutrino-electron scattering
sw2 = 0.23  # sin^2(theta_W)
gL_e = 0.5 + sw2  # left-handed coupling (nu_e)
gR_e = sw2  # right-handed coupling (nu_e)
gL_mu = -0.5 + sw2  # left-handed coupling (nu_mu, nu_tau)
gR_mu = sw2  # right-handed coupling (nu_mu, nu_tau)
sig0_es = 88.083e-46  # 2 GF^2 me^2 / pi in cm^2

# Particle codes (PDG numbering)
PDG_ELECTRON = 11
PDG_POSITRON = -11
PDG_NUE = 12
PDG_NUEBAR = -12
PDG_NUMU = 14
PDG_NUMUBAR = -14
PDG_GAMMA = 22
PDG_PROTON = 2212
PDG_NEUTRON = 2112

# Detector geometry (cm): half-height and radius of the water volumes
RINTK = 1690.0  # inner detector radius
ZPINTK = 1810.0  # inner detector half height
DITKTK = 1965.0  # full tank radius
ZPTKTK = 2110.0  # full tank half height
FIDUCIAL_MARGIN = 200.0  # distance of the fiducial surface from the inner wall
water_density = 1.0  # g/cm^3
water_molar_mass = 18.01528  # g/mol

# (radius, half height) of each selectable interaction volume
DETECTOR_VOLUMES = {
    'fiducial': (RINTK - FIDUCIAL_MARGIN, ZPINTK - FIDUCIAL_MARGIN),
    'inner': (RINTK, ZPINTK),
    'tank': (DITKTK, ZPTKTK),
}

# Targets per water molecule
PROTONS_PER_WATER = 2.0  # free protons
ELECTRONS_PER_WATER = 10.0
OXYGEN_PER_WATER = 1.0

# Reference distance for flux models (kpc)
REFERENCE_DISTANCE_KPC = 10.0
kpc_to_cm = 3.0856775814913673e21
MEV_TO_ERG = 1.602176634e-6

# Inverse beta decay: minimum positron total energy and neutrino threshold
eEneThr = Me
IBD_THRESHOLD = eEneThr + DeltaM

# Charged-current oxygen: neutrino energy threshold of the ground state
# transition (nu_e: 16O -> 16F, nu_e-bar: 16O -> 16N)
CC_OXYGEN_THRESHOLD = (15.42, 11.42)
# Unresolved sub-channel aggregate thresholds
CC_SUBCHANNEL_THRESHOLD = (15.4, 11.4)

# Nuclear tables of the charged-current oxygen interaction
CC_EXCITATION_LEVELS = (3, 15, 8, 1, 16)  # levels per nuclear state
CC_DECAY_CHANNELS = 7
CC_SUBCHANNELS = 32  # sub-reactions summed into the unresolved aggregate

# Particles emitted by the de-excitation of the residual nucleus for each
# decay channel: 0 bound, 1 p, 2 n, 3 alpha, 4 pp, 5 pn, 6 nn
_CC_CHANNEL_NUCLEONS = (
    (),
    (PDG_PROTON,),
    (PDG_NEUTRON,),
    (),
    (PDG_PROTON, PDG_PROTON),
    (PDG_PROTON, PDG_NEUTRON),
    (PDG_NEUTRON, PDG_NEUTRON),
)
CC_DECAY_PRODUCTS = (
    _CC_CHANNEL_NUCLEONS,
    ((PDG_GAMMA,),) + _CC_CHANNEL_NUCLEONS[1:],
)
CC_GAMMA_ENERGY = 12.674  # gamma of the bound 16N channel

# Neutral-current oxygen: levels and de-excitation gamma energies of the
# residual nucleus (index 0: p + 15N, index 1: n + 15O)
NC_EXCITATION_LEVELS = (8, 4)
NC_GAMMA_ENERGY = (
    (5.270, 5.299, 6.324, 7.155, 7.301, 7.567, 8.313, 8.571),
    (5.183, 5.241, 6.176, 6.793),
)
NUCLEON_KINETIC_ENERGY = 0.5  # kinetic energy of emitted nucleons

# Default binning of the rate integration
T_START = 0.0
T_END = 10.0
T_NBINS = 1000
NU_ENE_MIN = 0.0
NU_ENE_MAX = 300.0
NU_ENE_NBINS = 300

# Angular scan and rejection sampling
COS_THETA_MIN = -1.0
COS_THETA_MAX = 1.0
COS_THETA_NBINS = 1000
zero_precision = 1e-6
MAX_REJECTION_ITERATIONS = 1_000_000


__all__ = [
    # Basic constants
    'pi', 'GFermi', 'hbarc2', 'avogadro', 'cos_cabibbo', 'gA_nucleon',
    'ibd_radiative',
    # Masses
    'Me', 'Mp', 'Mn', 'DeltaM', 'Mnucleon',
    # Electroweak parameters
    'sw2', 'gL_e', 'gR_e', 'gL_mu', 'gR_mu', 'sig0_es',
    # Particle codes
    'PDG_ELECTRON', 'PDG_POSITRON', 'PDG_NUE', 'PDG_NUEBAR', 'PDG_NUMU',
    'PDG_NUMUBAR', 'PDG_GAMMA', 'PDG_PROTON', 'PDG_NEUTRON',
    # Detector
    'RINTK', 'ZPINTK', 'DITKTK', 'ZPTKTK', 'FIDUCIAL_MARGIN',
    'water_density', 'water_molar_mass', 'DETECTOR_VOLUMES',
    'PROTONS_PER_WATER', 'ELECTRONS_PER_WATER', 'OXYGEN_PER_WATER',
    'REFERENCE_DISTANCE_KPC', 'kpc_to_cm', 'MEV_TO_ERG',
    # Thresholds and nuclear tables
    'eEneThr', 'IBD_THRESHOLD', 'CC_OXYGEN_THRESHOLD',
    'CC_SUBCHANNEL_THRESHOLD', 'CC_EXCITATION_LEVELS', 'CC_DECAY_CHANNELS',
    'CC_SUBCHANNELS', 'CC_DECAY_PRODUCTS', 'CC_GAMMA_ENERGY',
    'NC_EXCITATION_LEVELS', 'NC_GAMMA_ENERGY', 'NUCLEON_KINETIC_ENERGY',
    # Binning and sampling
    'T_START', 'T_END', 'T_NBINS', 'NU_ENE_MIN', 'NU_ENE_MAX', 'NU_ENE_NBINS',
    'COS_THETA_MIN', 'COS_THETA_MAX', 'COS_THETA_NBINS', 'zero_precision',
    'MAX_REJECTION_ITERATIONS',
]
