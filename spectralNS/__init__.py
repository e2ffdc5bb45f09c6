"""Pseudo-spectral DNS of incompressible flow in a triply periodic box."""
from spectralNS.errors import ConfigurationError
from spectralNS.hat import SpectralDNS, DIAGNOSTIC_INTERVAL
from spectralNS.transforms import SerialTransform

__version__ = "2.0.0"

__all__ = ["ConfigurationError", "SpectralDNS", "SerialTransform",
           "DIAGNOSTIC_INTERVAL", "__version__"]
