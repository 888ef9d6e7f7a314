#!/usr/bin/env python3
"""
Unit tests for run configuration.
"""

import os
import shutil
import tempfile
import unittest
import numpy as np

from lptkit.core.config import SimulationConfig, GridConfiguration, SimulationParameters
from lptkit.api.simulation import main
from lptkit.core.exceptions import ConfigurationError

PARAMETER_FILE = """
[setup]
GridRes = 16
BoxLength = 250
zstart = 49
LPTorder = 2
BCClattice = true
SymplecticPT = no
DoFixing = yes
species = dm

[cosmology]
H0 = 68
Omega_m = 0.31
Omega_b = 0.049
transfer_file = {transfer_file}

[random]
seed = 4321

[output]
format = nyx
filename = run1
output_dir = {output_dir}
"""


class TestSimulationConfig(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults_validate(self):
        config = SimulationConfig().validate()
        self.assertEqual(config.grid.N, 64)
        self.assertEqual(config.simulation.lpt_order, 3)
        self.assertEqual(config.output.format, 'memory')

    def test_initial_scale_factor(self):
        self.assertAlmostEqual(SimulationParameters(initial_redshift=99.0).initial_scale_factor, 0.01)

    def test_from_kwargs(self):
        config = SimulationConfig.from_kwargs(
            GridRes=32, BoxLength=500.0, zstart=24, LPTorder=1,
            SymplecticPT='true', DoFixing=True, BCClattice=False,
            species='dm, baryon', seed=99, format='grid',
            pspec={'k': np.logspace(-3, 1, 10), 'pofk': np.ones(10)},
        )
        self.assertEqual(config.grid.N, 32)
        self.assertEqual(config.grid.Lbox, 500.0)
        self.assertEqual(config.simulation.initial_redshift, 24.0)
        self.assertEqual(config.simulation.lpt_order, 1)
        self.assertTrue(config.simulation.symplectic_pt)
        self.assertTrue(config.simulation.do_fixing)
        self.assertFalse(config.simulation.bcc_lattice)
        self.assertEqual(config.simulation.species, ('dm', 'baryon'))
        self.assertEqual(config.simulation.seed, 99)
        self.assertEqual(config.output.format, 'grid')
        self.assertIsNotNone(config.power_spectrum)
        config.validate()

    def test_validation_errors(self):
        invalid = [
            SimulationConfig(grid=GridConfiguration(N=15)),
            SimulationConfig(grid=GridConfiguration(N=16, Lbox=0.0)),
            SimulationConfig(simulation=SimulationParameters(lpt_order=0)),
            SimulationConfig(simulation=SimulationParameters(initial_redshift=-2.0)),
            SimulationConfig(simulation=SimulationParameters(species=('dm', 'photon'))),
            SimulationConfig.from_kwargs(format='hdf5'),
        ]
        for config in invalid:
            with self.assertRaises(ConfigurationError):
                config.validate()

    def test_from_ini(self):
        transfer_file = os.path.join(self.temp_dir, 'pk.txt')
        k = np.logspace(-3, 1, 20)
        np.savetxt(transfer_file, np.column_stack([k, 1e3 / k]))
        path = os.path.join(self.temp_dir, 'params.ini')
        with open(path, 'w') as f:
            f.write(PARAMETER_FILE.format(transfer_file=transfer_file, output_dir=self.temp_dir))

        config = SimulationConfig.from_ini(path).validate()
        self.assertEqual(config.grid.N, 16)
        self.assertEqual(config.grid.Lbox, 250.0)
        self.assertEqual(config.simulation.lpt_order, 2)
        self.assertTrue(config.simulation.bcc_lattice)
        self.assertFalse(config.simulation.symplectic_pt)
        self.assertTrue(config.simulation.do_fixing)
        self.assertEqual(config.simulation.species, ('dm',))
        self.assertEqual(config.simulation.seed, 4321)
        self.assertAlmostEqual(config.cosmology.H0, 68.0)
        self.assertEqual(config.output.format, 'nyx')
        self.assertEqual(config.output.base_filename, 'run1')
        self.assertEqual(config.output.output_dir, self.temp_dir)
        self.assertEqual(config.power_spectrum.k.shape, (20,))

    def test_from_ini_missing_key(self):
        path = os.path.join(self.temp_dir, 'params.ini')
        with open(path, 'w') as f:
            f.write("[setup]\nGridRes = 16\nBoxLength = 100\n")
        with self.assertRaises(ConfigurationError):
            SimulationConfig.from_ini(path)

    def test_from_ini_missing_file(self):
        with self.assertRaises(ConfigurationError):
            SimulationConfig.from_ini(os.path.join(self.temp_dir, 'missing.ini'))


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        transfer_file = os.path.join(self.temp_dir, 'pk.txt')
        k = np.logspace(-3, 1, 20)
        np.savetxt(transfer_file, np.column_stack([k, 1e3 / k]))
        self.parameters = PARAMETER_FILE.format(transfer_file=transfer_file, output_dir=self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write(self, text):
        path = os.path.join(self.temp_dir, 'params.ini')
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_run(self):
        self.assertEqual(main([self.write(self.parameters), '--log-level', 'ERROR']), 0)
        self.assertTrue(os.path.exists(os.path.join(self.temp_dir, 'run1_dm')))
        self.assertTrue(os.path.exists(os.path.join(self.temp_dir, 'input_powerspec.txt')))

    def test_missing_parameter_file(self):
        with self.assertLogs('lptkit', level='ERROR'):
            status = main([os.path.join(self.temp_dir, 'missing.ini'), '--log-level', 'ERROR'])
        self.assertEqual(status, 1)

    def test_invalid_parameters(self):
        path = self.write(self.parameters.replace('GridRes = 16', 'GridRes = 15'))
        with self.assertLogs('lptkit', level='ERROR'):
            status = main([path, '--log-level', 'ERROR'])
        self.assertEqual(status, 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
