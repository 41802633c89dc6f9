"""
Tests for cross-section and flux models.
"""

import math

import numpy as np
import pandas as pd
import pytest
from scipy.integrate import quad

from sngen import (
    ES_COUPLINGS, ChargedCurrentOxygen, ElasticScattering, Flavor, IBD_THRESHOLD,
    InverseBetaDecay, Me, Mn, Mp, NeutralCurrentOxygen, Nucleon, OxygenTables,
    PinchedFluxModel, StandardCrossSections, TabulatedFluxModel, UnresolvedSubChannel,
    emitted_flavor, es_dsigma_dcos, es_dsigma_dT, es_threshold_cos, es_tmax, es_total,
    flux_from_luminosity, ibd_dsigma_dcos_vb, ibd_total_sv, pinched_spectrum,
)


# =============================================================================
# Inverse beta decay
# =============================================================================

class TestInverseBetaDecay:
    """Tests of the IBD cross sections."""

    def test_total_threshold(self):
        assert ibd_total_sv(IBD_THRESHOLD - 0.01) == 0.0
        assert ibd_total_sv(IBD_THRESHOLD + 0.01) > 0.0

    def test_total_magnitude(self):
        # about 3e-41 cm^2 at 20 MeV
        assert 1e-41 < ibd_total_sv(20.0) < 1e-40
        assert ibd_total_sv(40.0) > ibd_total_sv(20.0)

    def test_angular_consistent_with_total(self):
        model = StandardCrossSections()
        integral, _ = quad(lambda c: model.differential(InverseBetaDecay(), 20.0, c)[0], -1.0, 1.0)
        # first-order angular form and the Strumia-Vissani fit agree to ~10-20%
        assert integral == pytest.approx(ibd_total_sv(20.0), rel=0.2)

    def test_positron_energy(self):
        sigma0 = StandardCrossSections().ibd_sigma0
        _, forward = ibd_dsigma_dcos_vb(20.0, 1.0, sigma0)
        _, backward = ibd_dsigma_dcos_vb(20.0, -1.0, sigma0)
        assert backward < forward < 20.0 - (Mn - Mp)
        assert ibd_dsigma_dcos_vb(1.0, 0.0, sigma0) == (0.0, pytest.approx(Me))


# =============================================================================
# Elastic scattering
# =============================================================================

class TestElasticScattering:
    """Tests of neutrino-electron scattering."""

    @pytest.mark.parametrize("flavor", list(Flavor))
    def test_total_integrates_dT(self, flavor):
        gL, gR = ES_COUPLINGS[flavor]
        numeric, _ = quad(lambda T: es_dsigma_dT(10.0, T, gL, gR), 0.0, es_tmax(10.0))
        assert es_total(10.0, gL, gR) == pytest.approx(numeric, rel=1e-6)

    def test_dcos_integrates_to_total(self):
        gL, gR = ES_COUPLINGS[Flavor.NUE]
        numeric, _ = quad(lambda c: es_dsigma_dcos(10.0, c, gL, gR)[0], 0.0, 1.0, limit=200)
        assert numeric == pytest.approx(es_total(10.0, gL, gR), rel=1e-4)

    def test_backward_hemisphere_empty(self):
        gL, gR = ES_COUPLINGS[Flavor.NUE]
        assert es_dsigma_dcos(10.0, -0.3, gL, gR)[0] == 0.0

    def test_flavor_ordering(self):
        totals = {f: es_total(10.0, *ES_COUPLINGS[f]) for f in Flavor}
        assert totals[Flavor.NUE] > totals[Flavor.NUEBAR] > totals[Flavor.NUX] > totals[Flavor.NUXBAR]
        # about 9.5e-44 cm^2 per MeV for nu_e
        assert totals[Flavor.NUE] / 10.0 == pytest.approx(9.5e-44, rel=0.1)

    def test_threshold_cos(self):
        gL, gR = ES_COUPLINGS[Flavor.NUE]
        cos_th = es_threshold_cos(10.0, 2.0)
        _, energy = es_dsigma_dcos(10.0, cos_th, gL, gR)
        assert energy - Me == pytest.approx(2.0)
        assert es_threshold_cos(5.0, 20.0) > 1.0

    def test_recoil_threshold_reduces_total(self):
        model = StandardCrossSections(elastic_min_kinetic=3.0)
        channel = ElasticScattering(Flavor.NUE)
        assert model.total(channel, 10.0) < StandardCrossSections().total(channel, 10.0)
        assert model.total(channel, 1.0) == 0.0
        assert model.threshold(channel) is None


# =============================================================================
# Oxygen
# =============================================================================

class TestOxygen:
    """Tests of the tabulated oxygen cross sections."""

    def test_interpolation(self, oxygen_tables):
        channel = ChargedCurrentOxygen(Flavor.NUEBAR, 0, 0, 0)
        assert oxygen_tables.cc_total(channel, 25.0) == pytest.approx(0.25e-42)
        assert oxygen_tables.cc_total(channel, 150.0) == 0.0
        assert oxygen_tables.cc_total(ChargedCurrentOxygen(Flavor.NUE, 4, 15, 6), 50.0) == 0.0

    def test_unresolved_summed(self, oxygen_tables):
        channel = UnresolvedSubChannel(Flavor.NUEBAR, 2)
        assert oxygen_tables.cc_total(channel, 50.0) == pytest.approx(2 * 0.5e-43)
        assert oxygen_tables.cc_total(UnresolvedSubChannel(Flavor.NUE, 2), 50.0) == 0.0

    def test_excitation_and_asymmetry(self, oxygen_tables):
        channel = ChargedCurrentOxygen(Flavor.NUE, 0, 1, 5)
        assert oxygen_tables.cc_excitation_energy(channel) == pytest.approx(3.0)
        assert oxygen_tables.cc_asymmetry(channel, 40.0) == pytest.approx(0.2)

    def test_neutral_current(self, oxygen_tables):
        assert oxygen_tables.nc_total(NeutralCurrentOxygen(Flavor.NUX, Nucleon.PROTON, 2), 50.0) == \
            pytest.approx(0.5e-43)
        assert oxygen_tables.nc_total(NeutralCurrentOxygen(Flavor.NUX, Nucleon.NEUTRON, 2), 50.0) == 0.0

    def test_optional_columns(self):
        frame = pd.DataFrame({'flavor': [0, 0], 'state': [0, 0], 'level': [0, 0], 'channel': [1, 1],
                              'energy': [10.0, 60.0], 'xs': [0.0, 5e-42]})
        tables = OxygenTables(cc=frame)
        channel = ChargedCurrentOxygen(Flavor.NUE, 0, 0, 1)
        assert tables.cc_asymmetry(channel, 30.0) == 0.0
        assert tables.cc_excitation_energy(channel) == 0.0

    def test_from_csv(self, tmp_path):
        path = tmp_path / "nc.csv"
        path.write_text("nucleon,level,energy,xs\n1,0,0.0,0.0\n1,0,100.0,1e-42\n")
        tables = OxygenTables.from_csv(nc_path=path)
        assert tables.nc_total(NeutralCurrentOxygen(Flavor.NUE, Nucleon.NEUTRON, 0), 50.0) == \
            pytest.approx(0.5e-42)

    def test_model_thresholds(self, cross_sections):
        assert cross_sections.threshold(InverseBetaDecay()) == pytest.approx(IBD_THRESHOLD)
        assert cross_sections.threshold(ChargedCurrentOxygen(Flavor.NUE, 0, 1, 5)) == pytest.approx(18.42)
        assert cross_sections.threshold(ChargedCurrentOxygen(Flavor.NUEBAR, 0, 0, 0)) == pytest.approx(11.42)
        assert cross_sections.threshold(UnresolvedSubChannel(Flavor.NUE, 0)) == pytest.approx(15.4)
        assert cross_sections.threshold(NeutralCurrentOxygen(Flavor.NUE, Nucleon.PROTON, 0)) is None

    def test_cc_angular_shape(self, cross_sections):
        channel = ChargedCurrentOxygen(Flavor.NUEBAR, 0, 0, 0)
        forward, energy = cross_sections.differential(channel, 50.0, 1.0)
        backward, _ = cross_sections.differential(channel, 50.0, -1.0)
        assert forward / backward == pytest.approx(1.2 / 0.8)
        assert energy == pytest.approx(50.0 - 11.42 + Me)
        # dsigma/dcos integrates to the total
        assert forward + backward == pytest.approx(cross_sections.total(channel, 50.0))

    def test_nc_has_no_lepton(self, cross_sections):
        with pytest.raises(ValueError):
            cross_sections.differential(NeutralCurrentOxygen(Flavor.NUE, Nucleon.PROTON, 0), 30.0, 0.0)


# =============================================================================
# Flux models
# =============================================================================

class TestFluxModels:
    """Tests of the supernova flux models."""

    @pytest.mark.parametrize("mean,alpha", [(10.0, 2.0), (15.0, 2.5), (18.0, 3.0)])
    def test_pinched_normalisation(self, mean, alpha):
        norm, _ = quad(lambda e: pinched_spectrum(e, mean, alpha), 0.0, 400.0)
        first, _ = quad(lambda e: e * pinched_spectrum(e, mean, alpha), 0.0, 400.0)
        assert norm == pytest.approx(1.0, rel=1e-6)
        assert first == pytest.approx(mean, rel=1e-6)

    def test_luminosity_flux(self):
        # 1e52 erg/s of 10 MeV neutrinos at 10 kpc
        expected = 1e52 / (10.0 * 1.602176634e-6) / (4.0 * math.pi * (3.0856775814913673e22) ** 2)
        assert flux_from_luminosity(1e52, 10.0) == pytest.approx(expected)

    def test_pinched_model(self):
        model = PinchedFluxModel(
            luminosity={Flavor.NUE: 1e52, Flavor.NUEBAR: 1e52, Flavor.NUX: lambda t: 1e52 * math.exp(-t)},
            mean_energy={Flavor.NUE: 10.0, Flavor.NUEBAR: 14.0, Flavor.NUX: 16.0},
        )
        energies = np.array([5.0, 15.0])
        assert np.array_equal(model.flux(Flavor.NUXBAR, 1.0, energies), model.flux(Flavor.NUX, 1.0, energies))
        assert model.flux(Flavor.NUX, 1.0, energies) == pytest.approx(
            math.exp(-1.0) * model.flux(Flavor.NUX, 0.0, energies))

    def test_pinched_model_missing_flavor(self):
        with pytest.raises(ValueError):
            PinchedFluxModel({Flavor.NUE: 1e52}, {Flavor.NUE: 10.0})

    def test_tabulated(self):
        rows = [(t, e, t + e, 2.0 * e, 0.0) for t in (0.0, 1.0) for e in (0.0, 10.0, 20.0)]
        model = TabulatedFluxModel(pd.DataFrame(rows, columns=['time', 'energy', 'nue', 'nuebar', 'nux']))
        assert model.flux(Flavor.NUE, 0.5, [5.0])[0] == pytest.approx(5.5)
        assert model.flux(Flavor.NUEBAR, 0.5, [15.0])[0] == pytest.approx(30.0)
        assert model.flux(Flavor.NUE, 2.0, [5.0])[0] == 0.0
        assert model.flux(Flavor.NUE, 0.5, [25.0])[0] == 0.0

    def test_tabulated_irregular(self):
        frame = pd.DataFrame({'time': [0.0, 0.0, 1.0], 'energy': [0.0, 1.0, 0.0],
                              'nue': [1.0] * 3, 'nuebar': [1.0] * 3, 'nux': [1.0] * 3})
        with pytest.raises(ValueError):
            TabulatedFluxModel(frame)

    def test_emitted_flavor(self):
        assert emitted_flavor(Flavor.NUXBAR) is Flavor.NUX
        assert emitted_flavor(Flavor.NUE) is Flavor.NUE
