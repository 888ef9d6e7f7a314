"""
LPT assembler: potentials, growth scaling and field synthesis per species.
"""
import logging
import os
from time import time
from typing import Callable, Optional
import jax.numpy as jnp

import lptkit.util.log_util as lklogutil
from ..core.config import GridConfiguration, SimulationParameters
from ..core.data_models import (
    FluidComponent,
    LPTCoefficients,
    LPTPotentials,
    OutputType,
    ParticleData,
    SimulationResult,
)
from ..core.exceptions import SimulationError
from ..grid.convolution import make_convolver
from ..grid.spectral_grid import SpectralGrid
from . import potentials as lpt_potentials
from .semiclassical import semiclassical_fields
from .synthesis import displacement_field, velocity_field, linear_density

logger = logging.getLogger(__name__)

# critical density in (M_sun/h) / (Mpc/h)^3
RHO_CRIT = 2.775e11


class LPTAssembler:
    """
    Builds LPT initial conditions for every configured species.

    The noise source, cosmology and output sink are injected. For each
    species the potentials phi(1), phi(2), phi(3a), phi(3b) and A(3) are
    computed as the effective order requires, scaled by their growth
    coefficients and turned into particles or grids, depending on what the
    output sink asks for.

    Parameters:
    -----------
    grid : GridConfiguration
        Grid size and box length (Mpc/h)
    params : SimulationParameters
        Order, starting redshift, variant flags and species
    noise_source : object with fill(grid)
        White-noise source for phi(1)
    cosmology : CosmologyService-like
        get_amplitude, growth_factor, velocity_growth_factor
    output : OutputPlugin
        Output sink
    phi_function : callable, optional
        fn(x, y, z) defining phi(1) in position space instead of noise
    power_spectrum_path : str, optional
        Where to write the input power spectrum table
    """

    def __init__(self, grid: GridConfiguration, params: SimulationParameters,
                 noise_source, cosmology, output,
                 phi_function: Optional[Callable] = None,
                 power_spectrum_path: Optional[str] = None,
                 comm=None, mpiproc: int = 0):
        self.grid = grid
        self.params = params
        self.noise_source = noise_source
        self.cosmology = cosmology
        self.output = output
        self.phi_function = phi_function
        self.power_spectrum_path = power_spectrum_path
        self.comm = comm
        self.mpiproc = mpiproc

        self.N = grid.N
        self.boxlen = grid.Lbox
        self.symplectic = params.symplectic_pt
        self.effective_order = self._effective_order()
        self.convolver = make_convolver(self.N, self.boxlen, dealiased=params.dealiased)
        self.times = {'t0': time()}

    def _effective_order(self) -> int:
        order = self.params.lpt_order
        if self.symplectic and order != 2:
            logger.warning("SymplecticPT has been selected and will overwrite chosen order of LPT to 2")
            order = 2
        return order

    def _timed(self, step: str):
        self.times = lklogutil.profiletime(None, step, self.times, self.comm, self.mpiproc)

    def coefficients(self) -> LPTCoefficients:
        """Growth coefficients at the starting scale factor."""
        a_start = self.params.initial_scale_factor
        Dplus0 = float(self.cosmology.growth_factor(a_start)) / float(self.cosmology.growth_factor(1.0))
        vfac = float(self.cosmology.velocity_growth_factor(a_start))
        return lpt_potentials.lpt_coefficients(Dplus0, vfac, self.effective_order)

    def run(self) -> SimulationResult:
        """Generate initial conditions for all species and finalize the output."""
        coeffs = self.coefficients()
        lklogutil.log_wrapper(
            logger,
            f"LPT order {self.effective_order}, D+ = {coeffs.Dplus0:.6g}, vfac = {coeffs.vfac1:.6g}"
        )
        if self.power_spectrum_path is not None:
            self.cosmology.write_power_spectrum(self.params.initial_scale_factor, self.power_spectrum_path)

        for species in self.params.species:
            lklogutil.log_wrapper(logger, f">> Computing ICs for species '{species}'")
            self.run_species(species, coeffs)

        self.output.finalize()
        self._timed('output')
        lklogutil.summarizetime(None, self.times, self.comm, self.mpiproc)

        return SimulationResult(
            success=True,
            effective_lpt_order=self.effective_order,
            coefficients=coeffs,
            species=list(self.params.species),
            timings={k: v for k, v in self.times.items() if k != 't0' and not k.endswith('_N')},
        )

    # ------------------------------------------------------------------
    # potentials
    # ------------------------------------------------------------------
    def compute_potentials(self, species: str, coeffs: LPTCoefficients) -> LPTPotentials:
        """Compute and growth-scale the potential set of one species."""
        pots = lpt_potentials.allocate_potentials(self.N, self.boxlen)
        conv = self.convolver
        order = self.effective_order

        lklogutil.log_wrapper(logger, "Computing phi(1) term")
        if self.phi_function is None:
            amplitude = lambda k: self.cosmology.get_amplitude(k, species)
            lpt_potentials.first_order_potential(pots.phi, self.noise_source, amplitude,
                                                 do_fixing=self.params.do_fixing)
        else:
            lpt_potentials.potential_from_function(pots.phi, self.phi_function)
        self._timed('phi1')

        if order > 1 or self.symplectic:
            lklogutil.log_wrapper(logger, "Computing phi(2) term")
            lpt_potentials.second_order_potential(conv, pots.phi, pots.phi2)
            self._timed('phi2')

        if order > 2 and not self.symplectic:
            lklogutil.log_wrapper(logger, "Computing phi(3a) term")
            lpt_potentials.third_order_potential_a(conv, pots.phi, pots.phi3a)
            self._timed('phi3a')

            lklogutil.log_wrapper(logger, "Computing phi(3b) term")
            lpt_potentials.third_order_potential_b(conv, pots.phi, pots.phi2, pots.phi3b)
            self._timed('phi3b')

            lklogutil.log_wrapper(logger, "Computing A(3) term")
            lpt_potentials.transverse_potential(conv, pots.phi, pots.phi2, pots.A3)
            self._timed('A3')

        if self.symplectic:
            lklogutil.log_wrapper(logger, "Computing vNLO(3) term")
            lpt_potentials.symplectic_velocity_correction(conv, pots.phi, pots.phi2, pots.A3)
            self._timed('vNLO3')

        return lpt_potentials.scale_potentials(pots, coeffs)

    # ------------------------------------------------------------------
    # per-species driver
    # ------------------------------------------------------------------
    def run_species(self, species: str, coeffs: LPTCoefficients):
        pots = self.compute_potentials(species, coeffs)
        try:
            output_type = OutputType(self.output.write_species_as(species))
        except ValueError as e:
            raise SimulationError(f"Output sink returned an unknown output type for species '{species}'") from e

        if output_type is OutputType.FIELD_EULERIAN:
            self._write_eulerian(species, pots, coeffs)
        elif output_type is OutputType.FIELD_LAGRANGIAN:
            self._write_lagrangian(species, pots, coeffs)
        elif output_type is OutputType.PARTICLES:
            self._write_particles(species, pots, coeffs)
        self._timed('synthesis')

    def _report_spectrum(self, grid: SpectralGrid, species: str, tag: str):
        if self.power_spectrum_path is None:
            return
        base, ext = os.path.splitext(self.power_spectrum_path)
        grid.write_power_spectrum(f"{base}_sampled_{tag}_{species}{ext or '.txt'}")

    def _write_eulerian(self, species: str, pots: LPTPotentials, coeffs: LPTCoefficients):
        phi2 = pots.phi2 if self.effective_order >= 2 else None
        rho, velocities, _ = semiclassical_fields(pots.phi, phi2, coeffs,
                                                  vunit=self.output.velocity_unit())
        self._report_spectrum(rho, species, 'evolved_semiclassical')
        self.output.write_grid_data(rho, species, FluidComponent.DENSITY)
        for idim, v in enumerate(velocities):
            self.output.write_grid_data(v, species, FluidComponent.velocity(idim))

    def _write_lagrangian(self, species: str, pots: LPTPotentials, coeffs: LPTCoefficients):
        tmp = SpectralGrid(self.N, self.boxlen)
        lunit = self.output.position_unit()
        vunit = self.output.velocity_unit()

        for idim in range(3):
            displacement_field(pots, idim, lunit, tmp)
            self.output.write_grid_data(tmp, species, FluidComponent.displacement(idim))
        for idim in range(3):
            velocity_field(pots, coeffs, idim, vunit, tmp, symplectic=self.symplectic)
            self.output.write_grid_data(tmp, species, FluidComponent.velocity(idim))

        density = linear_density(pots.phi, SpectralGrid(self.N, self.boxlen))
        self._report_spectrum(density, species, 'SPT')
        density.transform_to_real()
        self.output.write_grid_data(density, species, FluidComponent.DENSITY)

    def particle_mass(self, species: str) -> float:
        """rho_crit Omega_species (L/N)^3, halved on a BCC lattice."""
        cosmo = self.cosmology.parameters
        omega = cosmo.density_parameter(species, with_baryons='baryon' in self.params.species)
        mass = RHO_CRIT * omega * (self.boxlen / self.N) ** 3
        return 0.5 * mass if self.params.bcc_lattice else mass

    def _write_particles(self, species: str, pots: LPTPotentials, coeffs: LPTCoefficients):
        tmp = SpectralGrid(self.N, self.boxlen)
        lunit = self.output.position_unit()
        vunit = self.output.velocity_unit()
        bcc = self.params.bcc_lattice
        shape = tmp.shape

        q = [jnp.broadcast_to(c, shape) for c in tmp.unit_positions()]
        q_stag = [jnp.broadcast_to(c, shape) for c in tmp.staggered_unit_positions()]

        positions, velocities = [], []
        for idim in range(3):
            displacement_field(pots, idim, lunit, tmp)
            pos = [(q[idim] * lunit + tmp.real).ravel()]
            if bcc:
                tmp.stagger()
                pos.append((q_stag[idim] * lunit + tmp.real).ravel())
            positions.append(jnp.concatenate(pos))

        for idim in range(3):
            velocity_field(pots, coeffs, idim, vunit, tmp, symplectic=self.symplectic)
            vel = [tmp.real.ravel()]
            if bcc:
                tmp.stagger()
                vel.append(tmp.real.ravel())
            velocities.append(jnp.concatenate(vel))

        # base block first, then the staggered block
        ids = jnp.arange(len(positions[0]))

        particles = ParticleData(
            positions=jnp.stack(positions),
            velocities=jnp.stack(velocities),
            masses=jnp.asarray(self.particle_mass(species), dtype=jnp.float32),
            ids=ids,
        )
        lklogutil.log_wrapper(logger, f"Generated {particles.npart} '{species}' particles")
        self.output.write_particle_data(particles, species)
