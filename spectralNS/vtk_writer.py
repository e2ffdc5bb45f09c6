# vtk_writer.py
import numpy as np
import vtk
from vtk.util import numpy_support as vtknp


def _add_array(imageData, name, fields):
    """Attach fields (list of (Nx,Ny,Nz) arrays) as point data."""
    if len(fields) == 1:
        flat = fields[0].ravel(order="F")
    else:
        # VTK wants x fastest: transpose each component to Fortran order
        flat = np.stack([f.ravel(order="F") for f in fields], axis=-1)
    flat = np.ascontiguousarray(flat, dtype=np.float32)
    vtk_array = vtknp.numpy_to_vtk(num_array=flat, deep=True, array_type=vtk.VTK_FLOAT)
    vtk_array.SetName(name)
    imageData.GetPointData().AddArray(vtk_array)
    return vtk_array


def save_vti(filename, spacing, velocity, vorticity=None, pressure=None):
    """
    Save fields to a VTK .vti file (ImageData format) readable by
    ParaView/VisIt.

    velocity, vorticity: 3-tuples of host arrays (Nx,Ny,Nz); pressure: one
    array. Written as point data 'Velocity', 'Vorticity', 'Pressure'.
    """
    u = velocity[0]
    Nx, Ny, Nz = u.shape

    imageData = vtk.vtkImageData()
    imageData.SetDimensions(Nx, Ny, Nz)
    imageData.SetSpacing(spacing, spacing, spacing)
    imageData.SetOrigin(0.0, 0.0, 0.0)

    _add_array(imageData, "Velocity", list(velocity))
    if vorticity is not None:
        _add_array(imageData, "Vorticity", list(vorticity))
    if pressure is not None:
        _add_array(imageData, "Pressure", [pressure])
    imageData.GetPointData().SetActiveVectors("Velocity")

    writer = vtk.vtkXMLImageDataWriter()
    writer.SetFileName(str(filename))
    writer.SetInputData(imageData)
    if writer.Write() != 1:
        raise OSError(f"vtk failed to write {filename}")
