# state.py
from dataclasses import dataclass
from typing import Any


@dataclass
class SimulationState:
    """
    Every array the integrator touches, allocated once per run.

    Spectral slots have shape (3,) + spectral_shape (P_hat: spectral_shape),
    physical slots (3,) + real_shape. Within one outer step:
      U_hat   working state (evaluation point of the current stage)
      U_hat0  base snapshot taken at the start of the step
      U_hat1  accumulator of a[rk] * dU
      dU      stage increment (nonlinear term -> projected increment)
    """
    U_hat: Any
    U_hat0: Any
    U_hat1: Any
    dU: Any
    P_hat: Any
    curl_hat: Any

    U: Any            # physical velocity of U_hat, normalized
    curl: Any         # physical vorticity, normalized
    lamb: Any         # u x omega

    t: float = 0.0
    tstep: int = 0
    # U holds the physical image of the current U_hat
    physical_current: bool = False

    @classmethod
    def allocate(cls, xp, real_shape, spectral_shape, dtype, cdtype):
        def cplx(*lead):
            return xp.zeros(lead + tuple(spectral_shape), dtype=cdtype)

        def real(*lead):
            return xp.zeros(lead + tuple(real_shape), dtype=dtype)

        return cls(
            U_hat=cplx(3), U_hat0=cplx(3), U_hat1=cplx(3), dU=cplx(3),
            P_hat=cplx(), curl_hat=cplx(3),
            U=real(3), curl=real(3), lamb=real(3),
        )
