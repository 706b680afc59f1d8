"""
Standalone harness to generate spectrograms in bulk.

This script:
- loads the JSON config
- processes every supported audio file in input_directory
- saves spectrogram PNGs to output_directory

Usage: python -m audiosight.generate_spectrograms [config.json]
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from audiosight.audio_loader import is_supported_file
from audiosight.config import HarnessConfig, load_config
from audiosight.image_codec import save_png
from audiosight.logging_setup import setup_logging
from audiosight.pipeline import process_audio_file

DEFAULT_CONFIG_PATH = Path("spectrogram_config.json")

logger = logging.getLogger(__name__)


def output_path_for(audio_path: Path, output_dir: Path) -> Path:
    return output_dir / f"{audio_path.stem}_spectrogram.png"


def generate_for_directory(cfg: HarnessConfig) -> List[Path]:
    """Render every supported file in the input directory; returns written PNG paths."""
    audio_files = sorted(p for p in cfg.input_directory.iterdir() if p.is_file() and is_supported_file(p))
    results = []
    for audio_path in audio_files:
        logger.info("Processing %s", audio_path.name)
        result = process_audio_file(audio_path, config=cfg.pipeline)
        results.append(save_png(result.image, output_path_for(audio_path, cfg.output_directory)))
    return results


def run_harness(config_path: Path = DEFAULT_CONFIG_PATH) -> List[Path]:
    cfg = load_config(config_path)
    if not cfg.input_directory.is_dir():
        logger.warning("Input directory %s does not exist", cfg.input_directory)
        return []
    return generate_for_directory(cfg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    setup_logging()
    config_path = Path(args[0]) if args else DEFAULT_CONFIG_PATH
    results = run_harness(config_path)
    if not results:
        print(f"No audio files processed for {config_path}")
        return 1
    print(f"Generated {len(results)} spectrogram(s) into {results[0].parent}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
