"""Load backend declarations from a YAML configuration file.

What:
  Locate ``mailwire.yaml``, parse it with PyYAML, validate it with the
  pydantic models in :mod:`mailwire.config.schema`, and apply the result to a
  :class:`~mailwire.config.configuration.Configuration`.

Why:
  Deployments choose their transport (and its credentials) outside the code.
  Centralising the parsing guarantees the same validation and error messages
  whichever entry point loads the file.

How:
  Resolve candidate paths from an explicit argument, the
  ``MAILWIRE_CONFIG_PATH`` environment variable, then well-known defaults.
  Parse with ``yaml.safe_load``, validate with
  :meth:`MailwireConfig.model_validate`, and call ``set_delivery_method`` /
  ``set_retriever_method`` for the families present in the document.

Interfaces:
  :func:`parse_config`, :func:`load_configuration`.

Invariants:
  - Documents are fully validated before the configuration is touched, so a
    bad file never leaves a half-applied selection behind.
  - Unknown backend kinds raise
    :class:`~mailwire.errors.UnknownBackendKind` from the registry.

Safety/Performance:
  - ``safe_load`` never constructs arbitrary Python objects.
  - File errors are converted to :class:`~mailwire.errors.ConfigLoadError`
    with the path attached.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from ..errors import ConfigLoadError
from ..network import resolve_delivery_method, resolve_retriever_method
from .configuration import Configuration, get_configuration
from .schema import MailwireConfig

_CONFIG_ENV = "MAILWIRE_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("mailwire.yaml"),
    Path("/etc/mailwire/mailwire.yaml"),
)


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration file locations in priority order.

    What:
      Produce the explicit path, the ``MAILWIRE_CONFIG_PATH`` path and the
      default locations, deduplicated.

    Yields:
      Candidate paths ordered from most specific to least specific.
    """

    seen: set[Path] = set()
    candidates = []
    if path is not None:
        candidates.append(path)
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend(_DEFAULT_LOCATIONS)
    for candidate in candidates:
        candidate = candidate.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def parse_config(text: str, source: str = "<string>") -> MailwireConfig:
    """Parse and validate a configuration document.

    Args:
      text: YAML text.
      source: Name used in error messages.

    Returns:
      The validated :class:`MailwireConfig`.

    Raises:
      ConfigLoadError: On YAML syntax errors, a non-mapping document, or a
        schema violation.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"{source} must contain a mapping at the top-level")
    try:
        return MailwireConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise ConfigLoadError(f"Invalid {source}: {exc}") from exc


def apply_config(document: MailwireConfig, configuration: Configuration) -> Configuration:
    """Apply the families present in ``document`` to ``configuration``.

    Both kinds are resolved before either selection changes.
    """

    delivery = resolve_delivery_method(document.delivery.method) if document.delivery else None
    retriever = resolve_retriever_method(document.retriever.method) if document.retriever else None
    if delivery is not None:
        configuration.set_delivery_method(delivery, document.delivery.settings)
    if retriever is not None:
        configuration.set_retriever_method(retriever, document.retriever.settings)
    return configuration


def load_configuration(
    path: Optional[Path | str] = None,
    *,
    configuration: Optional[Configuration] = None,
) -> Configuration:
    """Find ``mailwire.yaml`` and apply it.

    What:
      Walks the candidate paths, loads the first existing file and applies it
      to ``configuration`` (the process-wide one by default).

    Args:
      path: Explicit file location.
      configuration: Target configuration; defaults to
        :func:`~mailwire.config.configuration.get_configuration`.

    Returns:
      The configuration that was updated.

    Raises:
      ConfigLoadError: When no candidate exists or the file is invalid.
    """

    requested = Path(path) if path is not None else None
    target = configuration if configuration is not None else get_configuration()
    searched = []
    for candidate in _candidate_paths(requested):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        try:
            text = candidate.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigLoadError(f"Unable to read configuration file {candidate}: {exc}") from exc
        return apply_config(parse_config(text, str(candidate)), target)
    raise ConfigLoadError(f"Unable to locate mailwire.yaml (searched: {', '.join(searched) or '<none>'})")
