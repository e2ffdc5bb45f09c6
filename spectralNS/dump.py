# dump.py
"""
Snapshot output.

``xdmf``: one raw file per snapshot holding U, V, W and P as float64
n^3 arrays back to back (``%08d.raw``, numbered by step), plus an XDMF 2
description (``a.%08d.xdmf2``, numbered by snapshot) with the grid, the
spacing and the byte offset of each field.

``vti``: one VTK ImageData file per snapshot with velocity, vorticity and
pressure (``velocity_%06d.vti``).
"""
import logging
import os

import numpy as np

from spectralNS.backend import to_host
from spectralNS.errors import ConfigurationError

log = logging.getLogger(__name__)

FIELDS = ("U", "V", "W", "P")
FORMATS = ("xdmf", "vti")

XDMF_HEAD = """\
<Xdmf
    Version="2">
  <Domain>
    <Grid>
      <Time
          Value="{t:+.16e}"/>
      <Topology
          TopologyType="3DCoRectMesh"
          Dimensions="{n} {n} {n}"/>
      <Geometry
          GeometryType="ORIGIN_DXDYDZ">
        <DataItem
            Dimensions="3">
          0
          0
          0
        </DataItem>
        <DataItem
            Dimensions="3">
          {dx:.16e}
          {dx:.16e}
          {dx:.16e}
        </DataItem>
      </Geometry>
"""

XDMF_ATTRIBUTE = """\
      <Attribute
          name="{name}">
        <DataItem
            Format="Binary"
            Seek="{seek}"
            Precision="8"
            Dimensions="{n} {n} {n}">
          {raw}
        </DataItem>
      </Attribute>
"""

XDMF_TAIL = """\
    </Grid>
  </Domain>
</Xdmf>
"""


def xdmf_document(raw_name, n, dx, t, names=FIELDS):
    offset = 0
    parts = [XDMF_HEAD.format(t=t, n=n, dx=dx)]
    for name in names:
        parts.append(XDMF_ATTRIBUTE.format(name=name, seek=offset, n=n, raw=raw_name))
        offset += n**3 * 8
    parts.append(XDMF_TAIL)
    return "".join(parts)


class SnapshotWriter:

    def __init__(self, out_dir=".", fmt="xdmf"):
        if fmt not in FORMATS:
            raise ConfigurationError(f"unknown dump format {fmt!r}, use one of {FORMATS}")
        self.out_dir = out_dir
        self.fmt = fmt
        self.idump = 0
        self.paths = []

    def write(self, solver, record):
        if solver.gateway.size != 1:
            raise ConfigurationError("snapshots are only written by single-process runs")
        os.makedirs(self.out_dir, exist_ok=True)
        if self.fmt == "vti":
            written = self._write_vti(solver, record)
        else:
            written = self._write_xdmf(solver, record)
        self.paths.extend(written)
        self.idump += 1
        return written

    def _physical_fields(self, solver):
        """U, V, W, P in real space, normalized, as float64 host arrays."""
        S = solver.S
        gw = solver.gateway
        out = []
        with gw.scratch() as buf:
            for var in (S.U_hat[0], S.U_hat[1], S.U_hat[2], S.P_hat):
                phys = gw.backward(var, buf)
                out.append(to_host(phys * solver.invn3).astype(np.float64))
        return out

    def _write_xdmf(self, solver, record):
        n = solver.n
        raw_name = f"{record.tstep:08d}.raw"
        raw_path = os.path.join(self.out_dir, raw_name)
        with open(raw_path, "wb") as f:
            for field in self._physical_fields(solver):
                np.ascontiguousarray(field).tofile(f)

        xdmf_path = os.path.join(self.out_dir, f"a.{self.idump:08d}.xdmf2")
        with open(xdmf_path, "w") as f:
            f.write(xdmf_document(raw_name, n, solver.dx, record.t))
        log.info("dump %s, %s", raw_path, xdmf_path)
        return [raw_path, xdmf_path]

    def _write_vti(self, solver, record):
        from spectralNS.vtk_writer import save_vti

        u, v, w, p = self._physical_fields(solver)
        W = solver.gateway.to_physical(solver._curl_hat(solver.S.U_hat))
        vort = [to_host(c).astype(np.float64) for c in W]
        path = os.path.join(self.out_dir, f"velocity_{record.tstep:06d}.vti")
        save_vti(path, solver.dx, (u, v, w), vorticity=vort, pressure=p)
        log.info("Velocity field saved to %s (VTK ImageData)", path)
        return [path]
