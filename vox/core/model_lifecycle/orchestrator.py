# File: vox/core/model_lifecycle/orchestrator.py

import gc
import torch
import logging
from threading import Lock
from typing import Callable, Optional
from .types import ModelKey, ModelType

logger = logging.getLogger(__name__)

class ModelOrchestrator:
    """
    Singleton Resource Manager.
    Keeps at most one speech model resident. Asking for a different
    size or device evicts the current one first.
    """
    _instance = None
    _lock = Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(ModelOrchestrator, cls).__new__(cls)
                cls._instance._current_key = None
                cls._instance._loaded_model = None
        return cls._instance

    def request_model(self, key: ModelKey, loader_func: Callable[[], object]):
        """
        Returns the model for `key`, loading it through `loader_func` only
        when it is not already resident.
        """
        with self._lock:
            if self._current_key == key and self._loaded_model is not None:
                return self._loaded_model

            if self._loaded_model is not None:
                self._unload()

            logger.info(f"Orchestrator: Loading {key}...")
            try:
                self._loaded_model = loader_func()
            except Exception as e:
                logger.error(f"Failed to load {key}: {e}")
                raise
            self._current_key = key
            return self._loaded_model

    def release(self):
        """Drops whatever model is resident."""
        with self._lock:
            if self._loaded_model is not None:
                self._unload()

    def _unload(self):
        if self._current_key:
            logger.info(f"Orchestrator: Unloading {self._current_key}...")

        self._loaded_model = None
        self._current_key = None

        gc.collect()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    def get_current_model_type(self) -> Optional[ModelType]:
        return self._current_key.model_type if self._current_key else None

    def get_current_key(self) -> Optional[ModelKey]:
        return self._current_key
