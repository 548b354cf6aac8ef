"""Load reporter options from YAML files."""

from pathlib import Path

import yaml


def load_options_file(path: Path) -> dict[str, object]:
    """Load reporter options from a YAML file.

    Args:
        path: Path to a YAML mapping using the reporter option names
            (URL, apiKey, testplanid, buildid, prefix)

    Returns:
        Options read from the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is invalid or not a mapping

    """
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file must contain a mapping: {path}")

    return {str(key): value for key, value in data.items()}
