"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Kernel services never read configuration
    files themselves; bridges in ``ledger_config.bridges`` translate the
    parsed configuration into kernel and report inputs.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and beside
    ``ledger_reports``.  The kernel MUST NEVER import from
    ``ledger_config``.

Invariants enforced:
    - Every returned configuration has passed ``validate_configuration``.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- parsing or validation failed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``ledger_config_loaded`` log entry with the config id, version and
    checksum, tying postings to the configuration that governed them.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_configuration
from ledger_config.schema import LedgerConfiguration
from ledger_config.validator import ConfigValidationResult, validate_configuration
from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfiguration:
    """
    Load, parse and validate the ledger configuration.

    Args:
        config_path: Override path to a YAML file.  Defaults to
            ``ledger_config/defaults/ledger.yaml``.

    Returns:
        A validated, frozen ``LedgerConfiguration``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If parsing or validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_configuration(load_yaml_file(path))

    validation = validate_configuration(config)
    for warning in validation.warnings:
        logger.warning("ledger_config_warning", extra={"warning": warning})
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    logger.info(
        "ledger_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "path": str(path),
            "policy_count": len(config.voucher_policies),
            "template_group_count": len(config.chart_template),
        },
    )
    return config


__all__ = [
    "ConfigValidationResult",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfiguration",
    "get_active_config",
    "validate_configuration",
]
