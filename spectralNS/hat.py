# hat.py
import logging
import math

import numpy as np

from spectralNS import diagnostics
from spectralNS.diagnostics import DiagnosticRecord
from spectralNS.errors import ConfigurationError
from spectralNS.grid import Wavenumbers
from spectralNS.state import SimulationState

log = logging.getLogger(__name__)

L = 2 * math.pi
DIAGNOSTIC_INTERVAL = 10

# low-storage RK4: accumulator weights and next evaluation points
RK_A = (1 / 6.0, 1 / 3.0, 1 / 3.0, 1 / 6.0)
RK_B = (0.5, 0.5, 1.0)


class SpectralDNS:
    """
    Incompressible Navier-Stokes on the periodic box [0, 2π)^3.

    The velocity lives in ``self.S.U_hat`` as unnormalized rFFT coefficients.
    All transforms go through ``gateway`` (see transforms.py / slab.py), so
    the same arithmetic runs in one process or on a slab of an MPI run.
    """

    def __init__(self, gateway, nu):
        self.gateway = gateway
        self.xp = gateway.xp
        self.n = gateway.n
        self.nu = float(nu)
        self.dx = L / self.n
        self.invn3 = 1.0 / gateway.n3

        self.wn = Wavenumbers(self.n, xp=self.xp, y_slice=gateway.y_slice,
                              dtype=gateway.dtype)
        self._dealias = self.wn.dealias.astype(gateway.dtype)

        self.S = SimulationState.allocate(self.xp, gateway.real_shape,
                                          gateway.spectral_shape,
                                          gateway.dtype, gateway.cdtype)
        log.info("n = %d, nu = %g, retained modes = %d",
                 self.n, self.nu, self.wn.retained_modes)

    @property
    def t(self):
        return self.S.t

    @property
    def nstep(self):
        return self.S.tstep

    # ---------------- initial conditions ----------------
    def mesh(self):
        """Local physical coordinates, shape (3,) + real_shape."""
        xs = self.gateway.x_slice
        grid = self.xp.mgrid[xs.start:xs.stop, 0:self.n, 0:self.n]
        return grid.astype(self.gateway.dtype) * self.dx

    def prepare_ic(self, ic_func):
        """
        ic_func takes the local mesh X (3, ...) and returns U(x) with the
        same shape.
        """
        U0 = ic_func(self.mesh())
        self.set_velocity_real(U0[0], U0[1], U0[2])

    def set_velocity_real(self, u, v, w):
        """Set (u,v,w) in real space and restart the clock."""
        xp = self.xp
        S = self.S
        for c, comp in enumerate((u, v, w)):
            S.U[c] = xp.asarray(comp, dtype=self.gateway.dtype)
        S.U_hat[...] = self.gateway.forward(S.U)
        S.P_hat[...] = 0
        S.physical_current = True
        S.t = 0.0
        S.tstep = 0

    def get_velocity_real(self):
        """Return (u,v,w) in real space."""
        U = self.gateway.to_physical(self.S.U_hat)
        return U[0], U[1], U[2]

    def pressure_real(self):
        """Pressure of the last stage projection in real space."""
        return self.gateway.to_physical(self.S.P_hat)

    # ---------------- right-hand side ----------------
    def _curl_hat(self, U_hat):
        wn = self.wn
        i = 1j
        W_hat = self.S.curl_hat
        W_hat[0] = i*(wn.KY*U_hat[2] - wn.KZ*U_hat[1])
        W_hat[1] = i*(wn.KZ*U_hat[0] - wn.KX*U_hat[2])
        W_hat[2] = i*(wn.KX*U_hat[1] - wn.KY*U_hat[0])
        return W_hat

    def _nonlinear_hat(self):
        """dU <- FFT(u x omega) at the current evaluation point."""
        S = self.S
        W_hat = self._curl_hat(S.U_hat)
        S.curl[...] = self.gateway.to_physical(W_hat)

        U, W = S.U, S.curl
        S.lamb[0] = U[1]*W[2] - U[2]*W[1]
        S.lamb[1] = U[2]*W[0] - U[0]*W[2]
        S.lamb[2] = U[0]*W[1] - U[1]*W[0]
        S.dU[...] = self.gateway.forward(S.lamb)
        return S.dU

    def _project(self, dt):
        """
        Remove the divergent part of dU and add explicit viscosity:
            P  = (dU . k) / |k|^2      (P = 0 at k = 0)
            dU = dU - P k - nu dt |k|^2 U_hat
        """
        wn = self.wn
        S = self.S
        dU = S.dU
        P = (dU[0]*wn.KX + dU[1]*wn.KY + dU[2]*wn.KZ) * wn.invK2
        S.P_hat[...] = P
        visc = (self.nu * dt) * wn.K2
        dU[0] -= P*wn.KX + visc*S.U_hat[0]
        dU[1] -= P*wn.KY + visc*S.U_hat[1]
        dU[2] -= P*wn.KZ + visc*S.U_hat[2]
        return dU

    def step(self, dt):
        """One outer RK4 step of size dt."""
        S = self.S
        S.U_hat0[...] = S.U_hat
        S.U_hat1[...] = S.U_hat
        for rk in range(4):
            if rk > 0 or not S.physical_current:
                S.U[...] = self.gateway.to_physical(S.U_hat)
            self._nonlinear_hat()
            S.dU *= self._dealias * dt
            self._project(dt)
            if rk < 3:
                S.U_hat[...] = S.U_hat0 + RK_B[rk]*S.dU
            S.U_hat1 += RK_A[rk]*S.dU
        S.U_hat[...] = S.U_hat1
        S.physical_current = False
        S.t += dt
        S.tstep += 1

    # ---------------- diagnostics ----------------
    def kinetic_energy(self):
        return diagnostics.energy_enstrophy(self.S.U_hat, self.wn, self.gateway)[0]

    def enstrophy(self):
        return diagnostics.energy_enstrophy(self.S.U_hat, self.wn, self.gateway)[1]

    def divergence_rms(self):
        return diagnostics.divergence_rms(self.S.U_hat, self.wn, self.gateway)

    def energy_spectrum(self):
        return diagnostics.energy_spectrum(self.S.U_hat, self.wn, self.gateway)

    def record(self) -> DiagnosticRecord:
        """Step, time and the stored-mode energy/enstrophy sums."""
        E, Z = diagnostics.stored_mode_sums(self.S.U_hat, self.wn, self.gateway)
        if not (math.isfinite(E) and math.isfinite(Z)):
            # device code is not covered by numpy's error state
            raise FloatingPointError(
                f"non-finite energy at step {self.S.tstep} (t={self.S.t:g})")
        return DiagnosticRecord(self.S.tstep, self.S.t, E, Z)

    # ---------------- public API ----------------
    def run(self, T, dt, callback=None, writer=None):
        """
        Integrate with fixed step dt until t > T.

        Every DIAGNOSTIC_INTERVAL steps a DiagnosticRecord is passed to
        ``callback(record, solver)`` and, if given, ``writer.write(solver,
        record)`` stores a snapshot. The record of the step that crosses T is
        still emitted when it falls on an interval. Floating-point invalid
        operations, overflow and division by zero raise FloatingPointError
        while the loop runs; callers that also want the setup trapped (the
        ``dns`` command does) wrap it in their own ``np.errstate``.

        Snapshots need the whole field in one process, so a writer under a
        distributed gateway is rejected before anything is computed.
        """
        if not dt > 0.0:
            raise ConfigurationError(f"time step must be positive, got {dt}")
        if writer is not None and self.gateway.size != 1:
            raise ConfigurationError("snapshots are only written by single-process runs")
        S = self.S
        last = None
        with np.errstate(divide="raise", over="raise", invalid="raise"):
            while True:
                if S.tstep % DIAGNOSTIC_INTERVAL == 0:
                    last = self.record()
                    if callback is not None:
                        callback(last, self)
                    if writer is not None:
                        writer.write(self, last)
                if S.t > T:
                    break
                self.step(dt)
        return last
