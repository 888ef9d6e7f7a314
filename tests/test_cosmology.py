#!/usr/bin/env python3
"""
Unit tests for cosmological parameters, power spectra and growth functions.
"""

import os
import tempfile
import unittest
import numpy as np

from lptkit.cosmology import CosmologicalParameters, PowerSpectrum, CosmologyService
from lptkit.core.exceptions import ConfigurationError
from lptkit.lpt import lpt_coefficients

try:
    import camb
    CAMB_AVAILABLE = True
except ImportError:
    CAMB_AVAILABLE = False


def power_law_spectrum(index=-1.0, **species):
    k = np.logspace(-3, 1, 200)
    return PowerSpectrum(k=k, pofk=1e3 * k**index,
                         species_pofk={name: factor * 1e3 * k**index for name, factor in species.items()})


class TestCosmologicalParameters(unittest.TestCase):

    def test_derived_parameters(self):
        params = CosmologicalParameters(H0=70.0, Omega_m=0.3, Omega_lambda=0.7)
        self.assertAlmostEqual(params.h, 0.7)
        self.assertAlmostEqual(params.omega_k, 0.0)

    def test_validation(self):
        with self.assertRaises(ConfigurationError):
            CosmologicalParameters(H0=-1.0)
        with self.assertRaises(ConfigurationError):
            CosmologicalParameters(Omega_m=0.04, Omega_b=0.05)

    def test_density_parameter(self):
        params = CosmologicalParameters(Omega_m=0.3, Omega_b=0.05)
        self.assertAlmostEqual(params.density_parameter('dm', with_baryons=True), 0.25)
        self.assertAlmostEqual(params.density_parameter('dm', with_baryons=False), 0.3)
        self.assertAlmostEqual(params.density_parameter('baryon'), 0.05)
        self.assertAlmostEqual(params.density_parameter('total'), 0.3)


class TestPowerSpectrum(unittest.TestCase):

    def test_validation(self):
        with self.assertRaises(ConfigurationError):
            PowerSpectrum(k=[0.1, 0.2], pofk=[1.0])
        with self.assertRaises(ConfigurationError):
            PowerSpectrum(k=[0.2, 0.1], pofk=[1.0, 1.0])
        with self.assertRaises(ConfigurationError):
            PowerSpectrum(k=[0.1, 0.2], pofk=[1.0, -1.0])

    def test_species_table_falls_back_to_total(self):
        ps = power_law_spectrum(baryon=0.5)
        np.testing.assert_allclose(np.asarray(ps.table('dm')), np.asarray(ps.pofk))
        np.testing.assert_allclose(np.asarray(ps.table('baryon')), 0.5 * np.asarray(ps.pofk), rtol=1e-6)

    def test_from_file(self):
        k = np.logspace(-2, 0, 10)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'pk.txt')
            np.savetxt(path, np.column_stack([k, k**-2, 2 * k**-2]))
            ps = PowerSpectrum.from_file(path, species_columns={'dm': 2})
        np.testing.assert_allclose(np.asarray(ps.k), k, rtol=1e-6)
        np.testing.assert_allclose(np.asarray(ps.table('dm')), 2 * k**-2, rtol=1e-5)


class TestGrowth(unittest.TestCase):

    def setUp(self):
        self.cosmo = CosmologyService(CosmologicalParameters(Omega_m=0.31, Omega_lambda=0.69),
                                      power_law_spectrum())
        self.eds = CosmologyService(CosmologicalParameters(Omega_m=1.0, Omega_b=0.0, Omega_lambda=0.0),
                                    power_law_spectrum())

    def test_requires_power_spectrum(self):
        with self.assertRaises(ConfigurationError):
            CosmologyService(CosmologicalParameters(), None)

    def test_growth_normalized_today(self):
        self.assertAlmostEqual(float(self.cosmo.growth_factor(1.0)), 1.0, places=6)
        self.assertLess(float(self.cosmo.growth_factor(0.5)), 1.0)
        self.assertGreater(float(self.cosmo.growth_factor(0.5)), 0.5)

    def test_einstein_de_sitter(self):
        for a in (0.02, 0.1, 0.5):
            self.assertAlmostEqual(float(self.eds.growth_factor(a)), a, places=5)
            self.assertAlmostEqual(float(self.eds.growth_rate(a)), 1.0, places=3)
            self.assertAlmostEqual(self.eds.velocity_growth_factor(a) / (100.0 / np.sqrt(a)), 1.0, places=3)

    def test_growth_rate_below_one_with_lambda(self):
        f = float(self.cosmo.growth_rate(1.0))
        self.assertGreater(f, 0.4)
        self.assertLess(f, 0.6)

    def test_amplitude(self):
        k = np.array([0.0, 0.05, 0.5, 3.0, 100.0])
        amplitude = np.asarray(self.cosmo.get_amplitude(k))
        self.assertEqual(amplitude[0], 0.0)
        self.assertEqual(amplitude[-1], 0.0)
        np.testing.assert_allclose(amplitude[1:4], np.sqrt(1e3 / k[1:4]), rtol=1e-3)

    def test_write_power_spectrum(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'input_pk.txt')
            self.eds.write_power_spectrum(0.5, path)
            table = np.loadtxt(path)
        np.testing.assert_allclose(table[:, 1], 0.25 * table[:, 2], rtol=1e-3)


class TestLPTCoefficients(unittest.TestCase):

    def test_third_order(self):
        c = lpt_coefficients(0.5, 10.0, order=3)
        self.assertAlmostEqual(c.g1, -0.5)
        self.assertAlmostEqual(c.g2, -3.0 / 7.0 * 0.25)
        self.assertAlmostEqual(c.g3a, -1.0 / 3.0 * 0.125)
        self.assertAlmostEqual(c.g3b, 10.0 / 21.0 * 0.125)
        self.assertAlmostEqual(c.g3c, -1.0 / 7.0 * 0.125)
        self.assertEqual((c.vfac1, c.vfac2, c.vfac3), (10.0, 20.0, 30.0))

    def test_lower_orders_zero_higher_terms(self):
        c = lpt_coefficients(0.5, 10.0, order=1)
        self.assertEqual((c.g2, c.g3a, c.g3b, c.g3c), (0.0, 0.0, 0.0, 0.0))
        c = lpt_coefficients(0.5, 10.0, order=2)
        self.assertNotEqual(c.g2, 0.0)
        self.assertEqual((c.g3a, c.g3b, c.g3c), (0.0, 0.0, 0.0))


@unittest.skipIf(not CAMB_AVAILABLE, "CAMB not available")
class TestCAMBIntegration(unittest.TestCase):

    def test_from_camb(self):
        pars = camb.set_params(H0=68.0, ombh2=0.022, omch2=0.12)
        pars.set_matter_power(redshifts=[0.0], kmax=2.0)
        results = camb.get_results(pars)
        ps = PowerSpectrum.from_camb(results, npoints=200)
        self.assertEqual(ps.k.shape, ps.pofk.shape)
        self.assertIn('dm', ps.species_pofk)
        self.assertIn('baryon', ps.species_pofk)
        self.assertTrue(bool(np.all(np.asarray(ps.pofk) > 0)))


if __name__ == '__main__':
    unittest.main(verbosity=2)
