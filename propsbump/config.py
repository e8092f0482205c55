"""Runtime settings for propsbump."""

import os
from dataclasses import dataclass, field

IGNORES_ENV_VAR = "PROPSBUMP_IGNORES"


def split_ignores(value: str | None) -> tuple[str, ...]:
    """Split comma-separated ignore fragments, dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass
class Settings:
    """Timeouts and exclusions for one run.

    Process timeouts are in seconds. A build timeout of 0 starts the build without
    waiting for it to finish.
    """

    http_timeout_s: float = 30.0
    list_timeout_s: float = 100.0
    restore_timeout_s: float = 60.0
    add_timeout_s: float = 60.0
    shutdown_timeout_s: float = 20.0
    build_timeout_s: float = 0.0
    ignores: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be > 0, got {self.http_timeout_s}")
        for name in ("list_timeout_s", "restore_timeout_s", "add_timeout_s", "shutdown_timeout_s"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")
        if self.build_timeout_s < 0:
            raise ValueError(f"build_timeout_s must be >= 0, got {self.build_timeout_s}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> "Settings":
        """Build settings from ``PROPSBUMP_*`` environment variables.

        Args:
            environ: Environment mapping, defaults to ``os.environ``
            **overrides: Explicit values that win over the environment

        Returns:
            Validated settings
        """
        env = os.environ if environ is None else environ
        values: dict = {}
        for name, var in (
            ("http_timeout_s", "PROPSBUMP_HTTP_TIMEOUT"),
            ("list_timeout_s", "PROPSBUMP_LIST_TIMEOUT"),
            ("restore_timeout_s", "PROPSBUMP_RESTORE_TIMEOUT"),
            ("add_timeout_s", "PROPSBUMP_ADD_TIMEOUT"),
            ("shutdown_timeout_s", "PROPSBUMP_SHUTDOWN_TIMEOUT"),
            ("build_timeout_s", "PROPSBUMP_BUILD_TIMEOUT"),
        ):
            raw = env.get(var)
            if raw:
                try:
                    values[name] = float(raw)
                except ValueError as e:
                    raise ValueError(f"{var} must be a number, got {raw!r}") from e

        ignores = split_ignores(env.get(IGNORES_ENV_VAR))
        if ignores:
            values["ignores"] = ignores

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
