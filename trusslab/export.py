# trusslab/export.py
"""
Export: element tables and recorded time histories as CSV.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from .recorder import RecordedSeries
from .structure import Structure

logger = logging.getLogger(__name__)


ELEMENT_COLUMNS = [
    "ID", "Material", "Yielded", "Broken", "Stress_Pa", "Strain", "Force_N",
    "Length_m", "Mass_kg", "Density", "Modulus_Pa", "Area_m2", "Yield_Pa", "Ultimate_Pa",
]


class ExportService:
    """Builds export tables from the live structure and from finished recordings."""

    @staticmethod
    def element_report(structure: Structure) -> pd.DataFrame:
        """One row per element with its current state and material properties."""
        lengths = structure.lengths()
        strains = structure.strains()
        stresses = structure.stresses()
        forces = structure.axial_forces()
        materials = structure.materials

        df = pd.DataFrame({
            "ID": np.asarray(structure.element_ids, dtype=int),
            "Material": [m.name for m in materials],
            "Yielded": structure.yielded.copy(),
            "Broken": structure.broken.copy(),
            "Stress_Pa": stresses,
            "Strain": strains,
            "Force_N": forces,
            "Length_m": lengths,
            "Mass_kg": structure.element_mass.copy(),
            "Density": [m.properties.density for m in materials],
            "Modulus_Pa": structure.youngs_modulus.copy(),
            "Area_m2": structure.area.copy(),
            "Yield_Pa": structure.yield_strength.copy(),
            "Ultimate_Pa": structure.ultimate_strength.copy(),
        }, columns=ELEMENT_COLUMNS)
        return df

    @staticmethod
    def element_report_csv(structure: Structure) -> str:
        return ExportService.element_report(structure).to_csv(index=False)

    @staticmethod
    def series_frame(series: RecordedSeries) -> pd.DataFrame:
        """`Time_s` plus one stress column per element, or a single `Displacement_m` column."""
        return series.to_dataframe()

    @staticmethod
    def series_csv(series: RecordedSeries) -> str:
        return series.to_dataframe().to_csv(index=False)

    @staticmethod
    def write_csv(text: str, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.info("Wrote %s", path)
        return path
