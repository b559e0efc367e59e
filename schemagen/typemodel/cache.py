"""Run-scoped memoization of extracted class models."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from ..errors import SchemaGenError
from .nodes import ClassModel


class TypeModelCache:
    """Single-writer, many-reader store of class models keyed by stable class key.

    The first model published for a key wins; later publishers receive the
    winning instance. Extraction failures are remembered so a broken class is
    reported consistently to every class that references it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: Dict[str, ClassModel] = {}
        self._errors: Dict[str, SchemaGenError] = {}

    def get(self, key: str) -> Optional[ClassModel]:
        with self._lock:
            model = self._models.get(key)
            error = self._errors.get(key)
        if error is not None:
            raise type(error)(
                error.detail, class_name=error.class_name, property_path=error.property_path
            )
        return model

    def publish(self, model: ClassModel) -> ClassModel:
        with self._lock:
            return self._models.setdefault(model.key, model)

    def fail(self, key: str, error: SchemaGenError) -> None:
        with self._lock:
            self._errors.setdefault(key, error)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._models)

    def __len__(self) -> int:
        with self._lock:
            return len(self._models)


__all__ = ["TypeModelCache"]
