# config.py
import math
from dataclasses import dataclass
from typing import Optional

from spectralNS.dump import FORMATS
from spectralNS.errors import ConfigurationError


@dataclass
class RunConfig:
    input_path: Optional[str] = None
    nu: Optional[float] = None
    T: Optional[float] = None
    dt: Optional[float] = None
    verbose: bool = False
    dump: bool = False
    dump_format: str = "xdmf"
    out_dir: str = "."
    backend: str = "auto"
    workers: Optional[int] = None

    def validate(self):
        """Raise ConfigurationError for missing or unusable parameters."""
        if self.T is None or self.T == 0 or not math.isfinite(self.T):
            raise ConfigurationError("-t is not set or invalid")
        if self.nu is None or not math.isfinite(self.nu):
            raise ConfigurationError("-n is not set or invalid")
        if self.dt is None or not math.isfinite(self.dt) or self.dt <= 0:
            raise ConfigurationError("-s is not set or invalid")
        if self.input_path is None:
            raise ConfigurationError("-i is not set")
        if self.dump_format not in FORMATS:
            raise ConfigurationError(f"unknown dump format {self.dump_format!r}")
        if self.workers is not None and self.workers < 1:
            raise ConfigurationError("--workers must be at least 1")
        return self
