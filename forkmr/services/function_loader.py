"""
Dynamic loader for user map/reduce functions kept in a Python file.
"""

import importlib.util
import os
import sys
from typing import Callable

from forkmr.utils.logger import get_logger


class FunctionLoadError(ImportError):
    """A functions file does not define a required callable."""


class FunctionLoader:
    """Loads ``map_function`` and ``reduce_function`` from a user Python file."""

    def __init__(self, path: str, module_name: str = "forkmr_user_functions"):
        self.path = path
        self.module_name = module_name
        self.module = None
        self.logger = get_logger(__name__)

    def load_module(self):
        """
        Import the user file as a module.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ImportError: If the file cannot be loaded as a module.
        """
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Functions file not found: {self.path}")

        spec = importlib.util.spec_from_file_location(self.module_name, self.path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load functions file: {self.path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[self.module_name] = module
        spec.loader.exec_module(module)
        self.module = module
        self.logger.debug(f"Loaded user functions from {self.path}")
        return module

    def _get(self, attribute: str) -> Callable:
        if self.module is None:
            self.load_module()
        func = getattr(self.module, attribute, None)
        if not callable(func):
            raise FunctionLoadError(f"{self.path} must define '{attribute}'")
        return func

    def get_map_function(self) -> Callable:
        return self._get("map_function")

    def get_reduce_function(self) -> Callable:
        return self._get("reduce_function")
