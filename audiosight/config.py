import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from audiosight.errors import ConfigurationError

FFT_SIZE_OPTIONS = (512, 1024, 2048, 4096, 8192)
ROW_MODES = ("nearest", "mean")
REFERENCE_CMAPS = ("magma", "inferno", "viridis", "plasma", "cividis", "gray")

DEFAULT_FFT_SIZE = 2048
DEFAULT_OVERLAP = 0.75
DEFAULT_MAX_WIDTH = 2000
DEFAULT_MAX_HEIGHT = 512
DEFAULT_ROW_MODE = ROW_MODES[0]
DEFAULT_COLUMN_CHUNK = 64

# Windows longer than this are decimated before the DFT.
MAX_TRANSFORM_SIZE = 2048

DB_EPSILON = 1e-10
DB_FLOOR = -90.0
DB_SPAN = 80.0

DEFAULT_TITLE = "SPECTROGRAM"
DEFAULT_TICK_COUNT = 5


@dataclass(frozen=True)
class SpectrogramDSP:
    fft_size: int = DEFAULT_FFT_SIZE
    overlap: float = DEFAULT_OVERLAP
    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT
    row_mode: str = DEFAULT_ROW_MODE
    column_chunk: int = DEFAULT_COLUMN_CHUNK
    max_workers: int = 1

    def __post_init__(self):
        if self.fft_size < 2 or self.fft_size % 2:
            raise ConfigurationError("fft_size must be an even integer >= 2", config_key="fft_size")
        if not 0.0 <= self.overlap < 1.0:
            raise ConfigurationError("overlap must be in [0, 1)", config_key="overlap")
        if self.max_width < 1:
            raise ConfigurationError("max_width must be positive", config_key="max_width")
        if self.max_height < 1:
            raise ConfigurationError("max_height must be positive", config_key="max_height")
        if self.row_mode not in ROW_MODES:
            raise ConfigurationError(f"Unsupported row mode '{self.row_mode}'", config_key="row_mode")
        if self.column_chunk < 1:
            raise ConfigurationError("column_chunk must be positive", config_key="column_chunk")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be positive", config_key="max_workers")

    @property
    def hop_length(self) -> int:
        return max(1, int(self.fft_size * (1.0 - self.overlap)))

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2


@dataclass(frozen=True)
class LabelParams:
    title: str = DEFAULT_TITLE
    font_size: int = 14
    tick_font_size: int = 10
    tick_count: int = DEFAULT_TICK_COUNT
    color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    enabled: bool = True


@dataclass(frozen=True)
class ReferenceRenderParams:
    cmap: str = "magma"
    dpi: int = 120
    figsize: Tuple[float, float] = (10.0, 4.0)


@dataclass(frozen=True)
class PipelineConfig:
    dsp: SpectrogramDSP = field(default_factory=SpectrogramDSP)
    labels: LabelParams = field(default_factory=LabelParams)
    max_input_bytes: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "PipelineConfig":
        dsp_raw = data.get("dsp", {})
        labels_raw = data.get("labels", {})
        try:
            dsp = SpectrogramDSP(
                fft_size=int(dsp_raw.get("fft_size", DEFAULT_FFT_SIZE)),
                overlap=float(dsp_raw.get("overlap", DEFAULT_OVERLAP)),
                max_width=int(dsp_raw.get("max_width", DEFAULT_MAX_WIDTH)),
                max_height=int(dsp_raw.get("max_height", DEFAULT_MAX_HEIGHT)),
                row_mode=str(dsp_raw.get("row_mode", DEFAULT_ROW_MODE)),
                column_chunk=int(dsp_raw.get("column_chunk", DEFAULT_COLUMN_CHUNK)),
                max_workers=int(dsp_raw.get("max_workers", 1)),
            )
            labels = LabelParams(
                title=str(labels_raw.get("title", DEFAULT_TITLE)),
                font_size=int(labels_raw.get("font_size", 14)),
                tick_font_size=int(labels_raw.get("tick_font_size", 10)),
                tick_count=int(labels_raw.get("tick_count", DEFAULT_TICK_COUNT)),
                color=tuple(labels_raw.get("color", (255, 255, 255, 255))),
                enabled=bool(labels_raw.get("enabled", True)),
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid spectrogram settings: {exc}") from exc
        max_input = data.get("max_input_bytes")
        return cls(
            dsp=dsp,
            labels=labels,
            max_input_bytes=None if max_input in (None, "") else int(max_input),
        )

    def to_dict(self) -> Dict:
        return {
            "dsp": {
                "fft_size": self.dsp.fft_size,
                "overlap": self.dsp.overlap,
                "max_width": self.dsp.max_width,
                "max_height": self.dsp.max_height,
                "row_mode": self.dsp.row_mode,
                "column_chunk": self.dsp.column_chunk,
                "max_workers": self.dsp.max_workers,
            },
            "labels": {
                "title": self.labels.title,
                "font_size": self.labels.font_size,
                "tick_font_size": self.labels.tick_font_size,
                "tick_count": self.labels.tick_count,
                "color": list(self.labels.color),
                "enabled": self.labels.enabled,
            },
            "max_input_bytes": self.max_input_bytes,
        }


@dataclass
class HarnessConfig:
    """
    JSON-driven settings for batch spectrogram generation.

    Relative directories resolve against the folder holding the config file.
    """

    input_directory: Path
    output_directory: Path
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, data: Dict, base: Path) -> "HarnessConfig":
        def _resolve(path_value: str) -> Path:
            path_obj = Path(path_value)
            return path_obj if path_obj.is_absolute() else (base / path_obj)

        try:
            input_directory = _resolve(data["input_directory"])
            output_directory = _resolve(data["output_directory"])
        except KeyError as exc:
            raise ConfigurationError(f"Missing harness setting {exc}", config_key=exc.args[0]) from exc

        return cls(
            input_directory=input_directory,
            output_directory=output_directory,
            pipeline=PipelineConfig.from_dict(data),
        )

    def to_dict(self, base: Optional[Path] = None) -> Dict:
        def _relativize(path: Path) -> str:
            if base is None:
                return str(path)
            try:
                return str(path.relative_to(base))
            except ValueError:
                return str(path)

        data = {
            "input_directory": _relativize(self.input_directory),
            "output_directory": _relativize(self.output_directory),
        }
        data.update(self.pipeline.to_dict())
        return data


def load_config(config_path: Path) -> HarnessConfig:
    config_path = Path(config_path)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Failed to parse configuration {config_path}: {exc}") from exc
    cfg = HarnessConfig.from_dict(raw, base=config_path.resolve().parent)
    cfg.output_directory.mkdir(parents=True, exist_ok=True)
    return cfg


def save_config(config: HarnessConfig, config_path: Path) -> None:
    config_path = Path(config_path)
    with config_path.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(base=config_path.resolve().parent), f, indent=2)
