"""mailwire configuration package.

What:
  Provide the in-process backend selection (:class:`Configuration` and its
  process-wide instance) and the YAML file loader.

Interfaces:
  - Configuration / get_configuration / reset_configuration: backend
    selection and the shared instance.
  - load_configuration / parse_config: ``mailwire.yaml`` handling.
  - MailwireConfig / BackendSelection: pydantic schema of that file.
"""

from .configuration import Configuration, get_configuration, reset_configuration
from .loader import load_configuration, parse_config
from .schema import BackendSelection, MailwireConfig

__all__ = [
    "Configuration",
    "get_configuration",
    "reset_configuration",
    "load_configuration",
    "parse_config",
    "BackendSelection",
    "MailwireConfig",
]
