"""
Model persistence: portable serialization, local store, file export/import.

Portable form (JSON compatible):

    {"A": {"values": [... count * 63 floats ...], "shape": [count, 63]}, ...}
"""
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from .errors import CorruptDataError, StorageError
from .landmarks import FEATURE_SIZE, is_letter

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "signlang-tutor-classifier"
EXPORT_PREFIX = "signlang-classifier"

PortableForm = Dict[str, Dict[str, Any]]


def serialize(model: Mapping[str, Sequence[Sequence[float]]]) -> PortableForm:
    """Flatten each letter's examples into values + shape. Empty letters are omitted."""
    data: PortableForm = {}
    for label, vectors in model.items():
        if not vectors:
            continue
        values = [float(v) for vector in vectors for v in vector]
        data[label] = {"values": values, "shape": [len(vectors), FEATURE_SIZE]}
    return data


def _shape_of(label: str, entry) -> tuple:
    if not isinstance(entry, dict):
        raise CorruptDataError(f"Entry for {label!r} is not an object")

    shape = entry.get("shape")
    if not isinstance(shape, (list, tuple)) or len(shape) != 2:
        raise CorruptDataError(f"Entry for {label!r} has invalid shape {shape!r}")
    rows, cols = shape
    if any(isinstance(n, bool) or not isinstance(n, int) or n < 0 for n in (rows, cols)):
        raise CorruptDataError(f"Entry for {label!r} has invalid shape {shape!r}")
    if cols != FEATURE_SIZE:
        raise CorruptDataError(f"Entry for {label!r} has {cols} features, expected {FEATURE_SIZE}")
    return rows, cols


def deserialize(data) -> Dict[str, list]:
    """
    Rebuild a classifier model from its portable form.

    Raises:
        CorruptDataError: structure, label, or shape/values mismatch
    """
    if not isinstance(data, dict):
        raise CorruptDataError("Model data must be an object keyed by letter")

    model: Dict[str, list] = {}
    for label, entry in data.items():
        if not is_letter(label):
            raise CorruptDataError(f"Unknown label {label!r}")
        rows, cols = _shape_of(label, entry)

        values = entry.get("values")
        if not isinstance(values, list):
            raise CorruptDataError(f"Entry for {label!r} has no values list")
        if len(values) != rows * cols:
            raise CorruptDataError(
                f"Entry for {label!r} has {len(values)} values, shape {rows}x{cols} needs {rows * cols}"
            )
        if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in values):
            raise CorruptDataError(f"Entry for {label!r} contains non-numeric values")

        model[label] = [
            tuple(float(v) for v in values[i * cols:(i + 1) * cols])
            for i in range(rows)
        ]
    return model


def parse(payload: bytes) -> PortableForm:
    """Decode an uploaded/exported file into the portable form."""
    try:
        return json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptDataError(f"Model file is not valid JSON: {e}") from e


class LocalModelStore:
    """
    Key-value store for the trained model, one JSON file per key.

    Writes go to a temp file first and are renamed into place, so a reader
    never sees a half-written model.
    """

    def __init__(self, directory: Path, key: str = DEFAULT_STORAGE_KEY):
        self._directory = Path(directory).expanduser()
        self._key = key

    @property
    def path(self) -> Path:
        return self._directory / f"{self._key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, data: PortableForm) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, 'w') as f:
                    json.dump(data, f)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to save model to {self.path}: {e}") from e
        logger.debug("Saved model to %s", self.path)

    def load(self) -> Optional[PortableForm]:
        """Stored portable form, or None when nothing has been saved."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'rb') as f:
                payload = f.read()
        except OSError as e:
            raise StorageError(f"Failed to read model from {self.path}: {e}") from e
        return parse(payload)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove {self.path}: {e}") from e


def save_classifier(classifier, store: LocalModelStore) -> None:
    store.save(serialize(classifier.get_dataset()))


def load_classifier(classifier, store: LocalModelStore) -> bool:
    """
    Restore the stored model into `classifier`.

    Returns:
        True if a model was found and loaded, False if nothing was stored.
    """
    data = store.load()
    if data is None:
        return False
    classifier.set_dataset(deserialize(data))
    return True


def export_filename(now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"{EXPORT_PREFIX}-{millis}.json"


def export_to_file(classifier, directory: Path, now: Optional[float] = None) -> Path:
    """Write the model to a timestamped JSON file in `directory`."""
    directory = Path(directory).expanduser()
    path = directory / export_filename(now)
    data = serialize(classifier.get_dataset())
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise StorageError(f"Failed to export model to {path}: {e}") from e
    logger.info("Exported %d samples to %s", classifier.get_total_samples(), path)
    return path


def latest_export(directory: Path) -> Optional[Path]:
    """Most recent export file in `directory` by its timestamp, or None."""
    directory = Path(directory).expanduser()
    best, best_millis = None, -1
    for path in directory.glob(f"{EXPORT_PREFIX}-*.json"):
        stamp = path.stem[len(EXPORT_PREFIX) + 1:]
        if not stamp.isdigit():
            continue
        if int(stamp) > best_millis:
            best, best_millis = path, int(stamp)
    return best


def import_from_file(classifier, payload: bytes, store: Optional[LocalModelStore] = None) -> int:
    """
    Replace the live model with an uploaded file's contents.

    The payload is fully validated and persisted before the live model is
    swapped, so a failure at any step leaves the current model untouched.

    Returns:
        Number of samples imported.
    """
    data = parse(payload)
    model = deserialize(data)
    if store is not None:
        store.save(serialize(model))
    classifier.set_dataset(model)
    total = sum(len(v) for v in model.values())
    logger.info("Imported %d samples", total)
    return total
