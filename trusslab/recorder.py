# trusslab/recorder.py
"""Time-history recording of element stresses or a single node's displacement."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidOperationState
from .structure import Structure

logger = logging.getLogger(__name__)


class RecorderState(Enum):
    IDLE = "idle"
    RECORDING = "recording"


class RecordMode(Enum):
    STRESS = "stress"              # full per-element stress vector per sample
    DISPLACEMENT = "displacement"  # tracked node's vertical displacement per sample


@dataclass
class RecordedSeries:
    """
    A finished recording.

    Parameters:
    -----------
    mode : RecordMode
        What each sample contains
    interval : float
        Simulated time between samples (s), normally dt · sub_steps
    times : np.ndarray
        Sample times (s), shape (n_samples,)
    values : np.ndarray
        STRESS mode: shape (n_samples, n_elements), stress in Pa
        DISPLACEMENT mode: shape (n_samples,), vertical displacement in m
    element_ids : List[int]
        Column order of `values` in STRESS mode
    node_id : int, optional
        Tracked node in DISPLACEMENT mode
    """
    mode: RecordMode
    interval: float
    times: np.ndarray
    values: np.ndarray
    element_ids: List[int] = field(default_factory=list)
    node_id: Optional[int] = None

    @property
    def n_samples(self) -> int:
        return len(self.times)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per sample; `Time_s` plus one column per element or `Displacement_m`."""
        if self.mode is RecordMode.DISPLACEMENT:
            df = pd.DataFrame({"Time_s": self.times, "Displacement_m": self.values})
        else:
            columns = [f"Element_{eid}_Stress_Pa" for eid in self.element_ids]
            values = self.values.reshape(self.n_samples, len(self.element_ids))
            df = pd.DataFrame(values, columns=columns)
            df.insert(0, "Time_s", self.times)
        return df


class Recorder:
    """
    Samples a signal once per tick for a fixed duration.

    IDLE --start()--> RECORDING --(elapsed >= duration)--> IDLE + emit series
                                --abort()----------------> IDLE, nothing emitted

    Parameters:
    -----------
    on_finished : Callable[[RecordedSeries], None], optional
        Export collaborator; called once with every completed series.
    """

    def __init__(self, on_finished: Optional[Callable[[RecordedSeries], None]] = None):
        self.on_finished = on_finished
        self.state = RecorderState.IDLE
        self.mode = RecordMode.STRESS
        self.duration = 0.0
        self.interval = 0.0
        self.elapsed = 0.0
        self.node_id: Optional[int] = None
        self._element_ids: List[int] = []
        self._samples: List = []
        self.last_series: Optional[RecordedSeries] = None

    @property
    def recording(self) -> bool:
        return self.state is RecorderState.RECORDING

    @property
    def progress(self) -> Tuple[float, float]:
        """(elapsed, duration) of the current session; (0, 0) when idle."""
        if not self.recording:
            return 0.0, 0.0
        return self.elapsed, self.duration

    def start(
        self,
        structure: Structure,
        duration: float,
        interval: float,
        simulation_running: bool,
        mode: RecordMode = RecordMode.STRESS,
        node_id: Optional[int] = None,
    ) -> None:
        """
        Begin a session.

        Raises:
        -------
        InvalidOperationState
            If the simulation is not advancing or a session is already active
        ValueError
            If duration or interval is not positive, or DISPLACEMENT mode
            has no node to track
        InvalidReference
            If the tracked node does not exist
        """
        if not simulation_running:
            logger.debug("Recording rejected: simulation is not running")
            raise InvalidOperationState("Cannot record while the simulation is stopped")
        if self.recording:
            raise InvalidOperationState("A recording session is already in progress")
        if duration <= 0 or interval <= 0:
            raise ValueError(f"duration and interval must be positive, got {duration}, {interval}")
        mode = RecordMode(mode)
        if mode is RecordMode.DISPLACEMENT:
            if node_id is None:
                raise ValueError("Displacement recording needs a node to track")
            structure.node(node_id)

        self.mode = mode
        self.duration = float(duration)
        self.interval = float(interval)
        self.elapsed = 0.0
        self.node_id = node_id if mode is RecordMode.DISPLACEMENT else None
        self._element_ids = list(structure.element_ids)
        self._samples = []
        self.state = RecorderState.RECORDING
        logger.info(
            "Recording %s for %.2f s every %.4f s", mode.value, self.duration, self.interval,
        )

    def sample(self, structure: Structure) -> Optional[RecordedSeries]:
        """
        Append one sample; call once per completed tick.

        Returns the finished series when this sample completes the session,
        otherwise None. Idle recorders ignore the call.
        """
        if not self.recording:
            return None

        if self.mode is RecordMode.DISPLACEMENT:
            if structure.has_node(self.node_id):
                self._samples.append(float(structure.node(self.node_id).displacement[1]))
            else:
                self._samples.append(np.nan)
        else:
            self._samples.append(self._stress_row(structure))

        self.elapsed = len(self._samples) * self.interval
        # tolerate rounding, e.g. 600 × (1/60) landing just below 10.0
        if self.elapsed >= self.duration - 1e-9 * self.interval:
            return self._finish()
        return None

    def _stress_row(self, structure: Structure) -> np.ndarray:
        stresses = structure.stresses()
        if structure.element_ids == self._element_ids:
            return stresses
        # topology changed mid-session: keep the starting column order
        row = np.full(len(self._element_ids), np.nan)
        for i, eid in enumerate(self._element_ids):
            if structure.has_element(eid):
                row[i] = stresses[structure._element_row_of(eid)]
        return row

    def _finish(self) -> RecordedSeries:
        n = len(self._samples)
        times = np.arange(1, n + 1, dtype=float) * self.interval
        if self.mode is RecordMode.DISPLACEMENT:
            values = np.asarray(self._samples, dtype=float)
        else:
            values = np.asarray(self._samples, dtype=float).reshape(n, len(self._element_ids))
        series = RecordedSeries(
            mode=self.mode,
            interval=self.interval,
            times=times,
            values=values,
            element_ids=list(self._element_ids),
            node_id=self.node_id,
        )
        self.state = RecorderState.IDLE
        self._samples = []
        self.last_series = series
        logger.info("Recording finished: %d samples", n)
        if self.on_finished is not None:
            self.on_finished(series)
        return series

    def abort(self) -> bool:
        """Drop the session without emitting. Returns True if a session was active."""
        if not self.recording:
            return False
        logger.info("Recording aborted after %.2f s (%d samples discarded)", self.elapsed, len(self._samples))
        self.state = RecorderState.IDLE
        self._samples = []
        self.elapsed = 0.0
        return True
