"""
Configuration for the MSURF descriptor.

All descriptor constants live here - no hardcoded numbers in msurf.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MSURFConfig:
    """
    Sampling pattern of the MSURF descriptor.

    The defaults describe the standard 24s x 24s pattern: a 4x4 grid of
    overlapping 9x9 sample lattices, with neighbouring lattices 5 samples
    apart.
    """

    sample_step: int = 5               # Offset between neighbouring subregions
    pattern_size: int = 12             # Half extent of the pattern, in samples
    subregion_size: int = 9            # Samples per subregion side
    grid_size: int = 4                 # Subregions per pattern side

    subregion_sigma_factor: float = 2.5  # Sample weight sigma, times the scale
    grid_sigma: float = 1.5              # Subregion weight sigma, in grid cells

    def __post_init__(self) -> None:
        for name in ("sample_step", "pattern_size", "subregion_size", "grid_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.subregion_sigma_factor <= 0.0 or self.grid_sigma <= 0.0:
            raise ValueError(
                "Gaussian sigmas must be positive, got "
                f"subregion_sigma_factor={self.subregion_sigma_factor}, "
                f"grid_sigma={self.grid_sigma}"
            )

    @property
    def descriptor_length(self) -> int:
        # dx, dy, |dx|, |dy| per subregion
        return self.grid_size * self.grid_size * 4


DEFAULT_MSURF_CONFIG = MSURFConfig()


__all__ = ["MSURFConfig", "DEFAULT_MSURF_CONFIG"]
