"""
Configuration data structures.
"""
import configparser
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .exceptions import ConfigurationError
from ..cosmology.parameters import CosmologicalParameters, PowerSpectrum

KNOWN_SPECIES = ('dm', 'baryon', 'neutrino', 'total')
KNOWN_FORMATS = ('memory', 'grid', 'grid_eulerian', 'nyx')


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@dataclass
class GridConfiguration:
    """Grid and box configuration."""
    N: int = 64
    Lbox: float = 100.0


@dataclass
class SimulationParameters:
    """Simulation-specific parameters."""
    seed: int = 13579
    lpt_order: int = 3
    initial_redshift: float = 50.0
    symplectic_pt: bool = False
    do_fixing: bool = False
    bcc_lattice: bool = False
    dealiased: bool = True
    species: Tuple[str, ...] = ('dm', 'baryon')

    @property
    def initial_scale_factor(self) -> float:
        return 1.0 / (1.0 + self.initial_redshift)


@dataclass
class OutputConfig:
    """Output configuration."""
    format: str = 'memory'
    base_path: str = './output/'
    base_filename: str = 'ics'
    output_dir: Optional[str] = None

    def __post_init__(self):
        """Set output_dir to base_path if not provided."""
        if self.output_dir is None:
            self.output_dir = self.base_path


@dataclass
class SimulationConfig:
    """Master configuration for a run."""
    cosmology: CosmologicalParameters = field(default_factory=CosmologicalParameters)
    grid: GridConfiguration = field(default_factory=GridConfiguration)
    simulation: SimulationParameters = field(default_factory=SimulationParameters)
    output: OutputConfig = field(default_factory=OutputConfig)
    power_spectrum: Optional[PowerSpectrum] = None

    def validate(self) -> 'SimulationConfig':
        """Check the configuration, raising ConfigurationError on the first problem."""
        if self.grid.N <= 0:
            raise ConfigurationError(f"GridRes must be positive, got {self.grid.N}")
        if self.grid.N % 2 != 0:
            raise ConfigurationError(
                f"GridRes must be even for 3/2-rule dealiasing, got {self.grid.N}"
            )
        if self.grid.Lbox <= 0:
            raise ConfigurationError(f"BoxLength must be positive, got {self.grid.Lbox}")
        if self.simulation.lpt_order < 1:
            raise ConfigurationError(f"LPTorder must be at least 1, got {self.simulation.lpt_order}")
        if self.simulation.initial_redshift < 0:
            raise ConfigurationError(
                f"zstart must be non-negative, got {self.simulation.initial_redshift}"
            )
        for species in self.simulation.species:
            if species not in KNOWN_SPECIES:
                raise ConfigurationError(f"Unknown species '{species}'")
        if self.output.format not in KNOWN_FORMATS:
            raise ConfigurationError(
                f"Unknown output format '{self.output.format}', expected one of {KNOWN_FORMATS}"
            )
        return self

    @classmethod
    def from_kwargs(cls, **kwargs) -> 'SimulationConfig':
        """
        Create from parameter-file style keyword arguments.

        Recognised keys: GridRes, BoxLength, zstart, LPTorder, BCClattice,
        SymplecticPT, DoFixing, Dealiased, species, seed, format, filename,
        output_dir, H0, Omega_m, Omega_b, Omega_L, nspec, sigma_8 and pspec
        (a dict with 'k' and 'pofk').
        """
        cosmo_params = CosmologicalParameters(
            H0=float(kwargs.get('H0', 67.0)),
            Omega_m=float(kwargs.get('Omega_m', 0.3)),
            Omega_b=float(kwargs.get('Omega_b', 0.049)),
            Omega_lambda=float(kwargs.get('Omega_L', 1.0 - float(kwargs.get('Omega_m', 0.3)))),
            n_s=float(kwargs.get('nspec', 0.965)),
            sigma_8=float(kwargs.get('sigma_8', 0.81)),
        )

        grid_config = GridConfiguration(
            N=int(kwargs.get('GridRes', 64)),
            Lbox=float(kwargs.get('BoxLength', 100.0))
        )

        species = kwargs.get('species', ('dm', 'baryon'))
        if isinstance(species, str):
            species = tuple(s.strip() for s in species.split(',') if s.strip())

        sim_params = SimulationParameters(
            seed=int(kwargs.get('seed', 13579)),
            lpt_order=int(float(kwargs.get('LPTorder', 3))),
            initial_redshift=float(kwargs.get('zstart', 50.0)),
            symplectic_pt=_as_bool(kwargs.get('SymplecticPT', False)),
            do_fixing=_as_bool(kwargs.get('DoFixing', False)),
            bcc_lattice=_as_bool(kwargs.get('BCClattice', False)),
            dealiased=_as_bool(kwargs.get('Dealiased', True)),
            species=tuple(species)
        )

        output_config = OutputConfig(
            format=kwargs.get('format', 'memory'),
            base_filename=kwargs.get('filename', 'ics'),
            base_path=kwargs.get('output_dir', './output/')
        )

        power_spectrum = None
        if 'pspec' in kwargs:
            pspec_data = kwargs['pspec']
            power_spectrum = PowerSpectrum(k=pspec_data['k'], pofk=pspec_data['pofk'])
        elif 'transfer_file' in kwargs:
            power_spectrum = PowerSpectrum.from_file(kwargs['transfer_file'])

        return cls(
            cosmology=cosmo_params,
            grid=grid_config,
            simulation=sim_params,
            output=output_config,
            power_spectrum=power_spectrum
        )

    @classmethod
    def from_ini(cls, path: str) -> 'SimulationConfig':
        """Create from an INI parameter file with [setup], [cosmology], [random] and [output] sections."""
        parser = configparser.ConfigParser()
        parser.optionxform = str
        if not parser.read(path):
            raise ConfigurationError(f"Cannot read parameter file '{path}'")
        if not parser.has_section('setup'):
            raise ConfigurationError(f"Parameter file '{path}' has no [setup] section")

        kwargs = {}
        for section in ('setup', 'cosmology', 'random', 'output'):
            if parser.has_section(section):
                kwargs.update(dict(parser.items(section)))

        for required in ('GridRes', 'BoxLength', 'zstart'):
            if required not in kwargs:
                raise ConfigurationError(f"Missing required key '{required}' in [setup]")

        return cls.from_kwargs(**kwargs)
