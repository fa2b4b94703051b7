"""
Environment variable substitution for YAML configuration text.

Supports:
    ${VAR}             value of VAR (empty string when unset)
    ${VAR:-default}    default when VAR is unset or empty
    ${VAR:?message}    ConfigurationError when VAR is unset or empty
    $${VAR}            literal ${VAR}
"""

import os
import re
from typing import Mapping, Optional

from rpc_compare.exceptions import ConfigurationError

_REFERENCE = re.compile(r"\$(\$?)\{([^}]*)\}")
_DEFAULT = re.compile(r"^(.+?):-(.*)$")
_REQUIRED = re.compile(r"^(.+?):\?(.*)$")


def substitute_env_vars(content: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Replace environment references in ``content``.

    Raises:
        ConfigurationError: If a ``${VAR:?...}`` variable is unset or empty
    """
    env = os.environ if environ is None else environ
    missing = []

    def _replace(match: "re.Match[str]") -> str:
        escaped, expression = match.group(1), match.group(2)
        if escaped:
            return "${" + expression + "}"

        required = _REQUIRED.match(expression)
        if required:
            name = required.group(1).strip()
            value = env.get(name, "")
            if not value:
                message = required.group(2).strip()
                missing.append(message or f"required environment variable {name} is not set")
            return value

        with_default = _DEFAULT.match(expression)
        if with_default:
            name = with_default.group(1).strip()
            return env.get(name, "") or with_default.group(2)

        return env.get(expression.strip(), "")

    result = _REFERENCE.sub(_replace, content)
    if missing:
        raise ConfigurationError("; ".join(missing))
    return result
