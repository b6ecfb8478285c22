import io
import logging
from typing import Any

import yaml

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)

YAML_DELIMITER = "---"
YAML_CLOSERS = ("---", "...")
TOML_DELIMITER = "+++"


class FrontMatterCodec:
    """Decode a document's front matter block without enforcing any schema."""

    def decode(self, block: str, delimiter: str = YAML_DELIMITER) -> tuple[dict[str, Any], str | None]:
        """
        Decode the lines between the front matter fences.

        Args:
            block: Text between the opening and closing fence lines
            delimiter: Opening fence, ``---`` for YAML or ``+++`` for TOML

        Returns:
            (metadata, error) where error is None on success. Broken front
            matter yields an empty mapping and a short description.
        """
        if not block.strip():
            return {}, None
        try:
            if delimiter == TOML_DELIMITER:
                data = tomllib.loads(block)
            else:
                data = yaml.safe_load(io.StringIO(block))
        except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
            logger.debug("Unparseable front matter: %s", e)
            return {}, str(e).splitlines()[0] if str(e) else type(e).__name__
        if data is None:
            return {}, None
        if not isinstance(data, dict):
            return {}, "front matter is not a mapping"
        return data, None

