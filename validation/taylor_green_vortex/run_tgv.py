import argparse
import os

from spectralNS.hat import SpectralDNS
from spectralNS.io import taylor_green_ic, taylor_green_field, write_velocity_raw
from spectralNS.transforms import SerialTransform

# 0.5<|u|^2> after 10 steps of dt=0.01, n=32, nu=0.000625 (spectralDNS demo)
E_REF = 0.124953117517


class RefTimeseriesLogger:
    """
    Callback to record: Time, Energy, Dissipation rate, Enstrophy, divergence
    - 'Dissipation' is computed as ε = 2ν Z (periodic, incompressible).
    - Also computes a numerical -dE/dt (from finite difference).
    """
    def __init__(self, path: str = None, also_print: bool = True):
        self.path = path
        self.also_print = also_print
        self.prev_t = None
        self.prev_E = None
        self.fh = None
        self.records = []
        if path is not None:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            self.fh = open(path, "w", buffering=1)
            self.fh.write("# Time  Energy  Dissipation  Enstrophy  -dE/dt_num  div_rms\n")

    def __call__(self, rec, solver):
        t, E, Z = rec.t, rec.energy, rec.enstrophy
        eps = 2.0 * solver.nu * Z
        div = solver.divergence_rms()

        dE_num = 0.0
        if self.prev_t is not None and t > self.prev_t:
            dE_num = -(E - self.prev_E) / (t - self.prev_t)
        self.prev_t, self.prev_E = t, E
        self.records.append(rec)

        line = f"{t:.8f} {E:.12f} {eps:.12f} {Z:.12f} {dE_num:.12f} {div:.3e}\n"
        if self.fh is not None:
            self.fh.write(line)
        if self.also_print:
            print(f"[TG] step={rec.tstep} " + line.strip())

    def close(self):
        if self.fh is not None:
            self.fh.close()


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Taylor-Green vortex check")
    ap.add_argument("--N", type=int, default=32)
    ap.add_argument("--nu", type=float, default=0.000625)
    ap.add_argument("--T", type=float, default=0.1)
    ap.add_argument("--dt", type=float, default=0.01)
    ap.add_argument("--raw", help="also write the initial field as a dns input file")
    args = ap.parse_args()

    if args.raw:
        write_velocity_raw(args.raw, *taylor_green_field(args.N))

    solver = SpectralDNS(SerialTransform(args.N), nu=args.nu)
    solver.prepare_ic(taylor_green_ic)

    logger = RefTimeseriesLogger(path="temporals.txt")
    solver.run(T=args.T, dt=args.dt, callback=logger)
    logger.close()

    for rec in logger.records:
        if rec.tstep == 10:
            print(f"E(step 10)={rec.energy:.12f}  E(ref)={E_REF:.12f}  "
                  f"rel.err={abs(rec.energy - E_REF)/E_REF:.3e}")
