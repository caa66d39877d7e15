"""Plain-text export of finalized transcripts."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class TranscriptExporter:
    """Writes finalized transcript text to dated files."""

    def __init__(self, export_dir: str = "."):
        """Initialize exporter with its target directory.

        Args:
            export_dir: Directory transcript files are written into
        """
        self.export_dir = Path(export_dir)

    @staticmethod
    def filename_for(on_date: date) -> str:
        return f"transcript-{on_date.isoformat()}.txt"

    def export(self, text: str, directory: Optional[str] = None,
               on_date: Optional[date] = None) -> Optional[Path]:
        """Write text to transcript-YYYY-MM-DD.txt.

        An existing file for the same day is overwritten.

        Args:
            text: Finalized transcript text
            directory: Overrides the exporter's directory for this call
            on_date: Date used in the filename, today if not given

        Returns:
            Path to the written file, or None if text is empty or whitespace
        """
        if not text.strip():
            logger.info("No transcript to export")
            return None

        target_dir = Path(directory) if directory else self.export_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        filepath = target_dir / self.filename_for(on_date or date.today())

        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(text)

        logger.info(f"Transcript exported: {filepath} ({len(text)} characters)")
        return filepath
