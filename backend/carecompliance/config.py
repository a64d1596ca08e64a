"""Compliance rules loaded from CARE_* environment variables and .env files."""

import os
from dataclasses import fields
from typing import Optional

from dotenv import load_dotenv

from .exceptions import InvalidInputError
from .types import DEFAULT_RULES, ComplianceRules

ENV_PREFIX = "CARE_"


def env_var_name(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


def load_rules(env_file: Optional[str] = None, base: Optional[ComplianceRules] = None) -> ComplianceRules:
    """
    Build rules from CARE_* environment overrides on top of ``base``.

    e.g. CARE_NIGHT_START=22:00, CARE_REQUALIFICATION_THRESHOLD=3
    """
    load_dotenv(env_file)
    base = base or DEFAULT_RULES

    overrides = {}
    invalid = []
    for f in fields(ComplianceRules):
        name = env_var_name(f.name)
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            continue
        current = getattr(base, f.name)
        try:
            if isinstance(current, int):
                overrides[f.name] = int(raw)
            elif isinstance(current, float):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw.strip()
        except ValueError:
            invalid.append(f"{name}={raw!r}")

    if invalid:
        raise RuntimeError(
            f"Invalid compliance environment variables: {', '.join(invalid)}. "
            "Please fix these in your .env file."
        )

    values = {f.name: getattr(base, f.name) for f in fields(ComplianceRules)}
    values.update(overrides)
    try:
        return ComplianceRules(**values)
    except InvalidInputError as exc:
        raise RuntimeError(f"Inconsistent compliance environment variables: {exc}") from exc
