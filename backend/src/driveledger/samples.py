"""Recorded telemetry corpus with JSON primary and delimited-text fallback."""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .coerce import clean_str, safe_float, safe_int
from .errors import DataLoadError
from .schema import TelemetrySample

_logger = logging.getLogger("driveledger.samples")


class SampleStore:
    """Ordered, read-only collection of recorded telemetry samples."""

    FLOAT_FIELDS = ("speed_kmph", "fuel_level_pct", "engine_temp_c", "lat", "lon")
    INT_FIELDS = ("engine_rpm",)

    def __init__(self, json_path: Optional[str] = None, csv_path: Optional[str] = None):
        self.json_path = json_path
        self.csv_path = csv_path
        self._samples: Tuple[TelemetrySample, ...] = ()
        self.source: Optional[str] = None

    @classmethod
    def from_samples(cls, samples: Sequence[TelemetrySample]) -> "SampleStore":
        """Build an already-loaded store from in-memory samples."""
        store = cls()
        store._replace(samples, "memory")
        return store

    def __len__(self) -> int:
        return len(self._samples)

    def __getitem__(self, index: int) -> TelemetrySample:
        return self._samples[index]

    @property
    def samples(self) -> Tuple[TelemetrySample, ...]:
        return self._samples

    def is_empty(self) -> bool:
        return not self._samples

    def load(self, json_path: Optional[str] = None, csv_path: Optional[str] = None) -> Tuple[TelemetrySample, ...]:
        """
        Load the corpus, replacing whatever was loaded before.

        The JSON file is tried first; the delimited file is the fallback.

        Raises:
            DataLoadError: If neither file can be read and parsed
        """
        json_path = json_path or self.json_path
        csv_path = csv_path or self.csv_path

        errors = []
        if json_path:
            try:
                samples = self.parse_json(self._read_text(json_path))
                return self._replace(samples, json_path)
            except (OSError, ValueError, ValidationError) as e:
                _logger.warning("Could not load telemetry JSON %s: %s", json_path, e)
                errors.append(f"{json_path}: {e}")

        if csv_path:
            try:
                samples = self.parse_delimited(self._read_text(csv_path))
                return self._replace(samples, csv_path)
            except (OSError, ValueError, ValidationError) as e:
                _logger.warning("Could not load telemetry CSV %s: %s", csv_path, e)
                errors.append(f"{csv_path}: {e}")

        if not errors:
            errors.append("no corpus path configured")
        raise DataLoadError("Failed to load telemetry samples: " + "; ".join(errors))

    def _replace(self, samples: Sequence[TelemetrySample], source: str) -> Tuple[TelemetrySample, ...]:
        self._samples = tuple(samples)
        self.source = source
        _logger.info("Loaded %d data points from %s", len(self._samples), source)
        return self._samples

    @classmethod
    def parse_json(cls, content: str) -> List[TelemetrySample]:
        """Parse a JSON array of sample records."""
        records = json.loads(content)
        if not isinstance(records, list):
            raise ValueError("Expected a JSON array of telemetry records")
        if not records:
            raise ValueError("Telemetry JSON array is empty")
        return [TelemetrySample.model_validate(record) for record in records]

    @classmethod
    def parse_delimited(cls, content: str) -> List[TelemetrySample]:
        """Parse delimited text with a header row using the sample field names."""
        delimiter = cls._detect_delimiter(content)
        reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)

        samples = []
        skipped = 0
        for row in reader:
            record = cls._process_row(row)
            if record is None:
                skipped += 1
                continue
            samples.append(TelemetrySample.model_validate(record))

        if skipped:
            _logger.warning("Skipped %d telemetry rows without numeric data", skipped)
        if not samples:
            raise ValueError("No valid telemetry rows found")
        return samples

    @classmethod
    def _process_row(cls, row: Dict[Optional[str], Optional[str]]) -> Optional[Dict]:
        """Coerce one delimited row; rows with no numeric field give None."""
        cleaned = {
            (k or "").strip(): v.strip() if isinstance(v, str) else v
            for k, v in row.items()
        }
        record: Dict = {}
        for field in cls.FLOAT_FIELDS:
            value = safe_float(cleaned.get(field))
            if value is not None:
                record[field] = value
        for field in cls.INT_FIELDS:
            value = safe_int(cleaned.get(field))
            if value is not None:
                record[field] = value
        if not record:
            return None

        record["dtc_code"] = clean_str(cleaned.get("dtc_code")) or ""
        timestamp = clean_str(cleaned.get("timestamp"))
        if timestamp:
            record["timestamp"] = timestamp
        return record

    @classmethod
    def _read_text(cls, path: str) -> str:
        """Read a file with encoding fallback: utf-8 -> utf-8-sig -> latin1."""
        raw = Path(path).read_bytes()
        for encoding in ("utf-8", "utf-8-sig", "latin1"):
            try:
                decoded = raw.decode(encoding)
            except UnicodeDecodeError:
                continue
            # Remove BOM if present
            if decoded.startswith("\ufeff"):
                decoded = decoded[1:]
            return decoded
        raise ValueError(f"Could not decode {path}")

    @classmethod
    def _detect_delimiter(cls, content: str) -> str:
        """Pick tab, semicolon or comma by frequency in the header line."""
        first_line = content.split("\n")[0] if "\n" in content else content
        counts = {d: first_line.count(d) for d in ("\t", ";", ",")}
        best = max(counts, key=lambda d: counts[d])
        return best if counts[best] > 0 else ","
