"""Catalog of the named test suites and the environment each one runs with."""

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from txn_harness.config import DBSettings, url_env_var

logger = logging.getLogger(__name__)

ADAPTERS = ("sqlite", "postgres", "mysql", "mssql", "oracle")
ADAPTER_EXTRA_ENV = "TXN_HARNESS_ADAPTER_EXTRA"
ADAPTER_ENV = "TXN_HARNESS_ADAPTER"


@dataclass(frozen=True)
class Suite:
    """A named group of test paths plus what they need to run."""

    name: str
    paths: Tuple[str, ...]
    description: str
    target: Optional[str] = None
    mocked: bool = False
    adapter: Optional[str] = None
    pytest_args: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def loads_adapter_extra(self) -> bool:
        return self.adapter is not None

    def environment(
        self, db_settings: DBSettings, base: Optional[Mapping[str, str]] = None
    ) -> Dict[str, str]:
        """
        Build the environment for the pytest subprocess.

        Integration suites bound to an adapter receive that adapter's URL as
        the integration URL. The adapter extra file is only passed on to
        adapter-specific suites.
        """
        env = dict(os.environ if base is None else base)
        if self.adapter is not None:
            env[ADAPTER_ENV] = self.adapter
        else:
            env.pop(ADAPTER_ENV, None)
        if not self.loads_adapter_extra:
            env.pop(ADAPTER_EXTRA_ENV, None)
        if self.target == "integration" and self.adapter is not None:
            url = db_settings.target(self.adapter).url
            if url:
                env[url_env_var("integration")] = url
            else:
                env.pop(url_env_var("integration"), None)
        return env


def _build_catalog() -> Dict[str, Suite]:
    suites = [
        Suite(
            name="core",
            paths=("tests/unit",),
            description="Core and model tests against a mocked connection.",
            mocked=True,
        ),
        Suite(
            name="plugin",
            paths=("tests/plugin",),
            description="pytest plugin tests against a mocked connection.",
            mocked=True,
        ),
        Suite(
            name="bin",
            paths=("tests/bin",),
            description="Command-line tool tests using a file-based SQLite database.",
        ),
        Suite(
            name="integration",
            paths=("tests/integration",),
            description="Shared integration tests against TXN_HARNESS_INTEGRATION_URL.",
            target="integration",
        ),
    ]
    for adapter in ADAPTERS:
        suites.append(
            Suite(
                name=adapter,
                paths=(f"tests/adapters/test_{adapter}.py",),
                description=f"{adapter} adapter tests against {url_env_var(adapter)}.",
                target=adapter,
                adapter=adapter,
            )
        )
        suites.append(
            Suite(
                name=f"integration-{adapter}",
                paths=("tests/integration",),
                description=f"Shared integration tests against {url_env_var(adapter)}.",
                target="integration",
                adapter=adapter,
            )
        )
    return {suite.name: suite for suite in suites}


SUITES: Dict[str, Suite] = _build_catalog()


def get_suite(name: str) -> Suite:
    """Look up a suite by name; raises KeyError for unknown names."""
    return SUITES[name]


def build_pytest_command(suite: Suite, extra_args: Sequence[str] = ()) -> List[str]:
    return [
        sys.executable,
        "-m",
        "pytest",
        *suite.paths,
        *suite.pytest_args,
        *extra_args,
    ]


def run_suite(
    suite: Suite,
    db_settings: DBSettings,
    root: Path,
    extra_args: Sequence[str] = (),
) -> int:
    """
    Run one suite through pytest in a subprocess.

    Args:
        suite: Suite to run.
        db_settings: Settings used to resolve adapter URLs.
        root: Project root the suite paths are relative to.
        extra_args: Additional pytest arguments.

    Returns:
        pytest's exit code.
    """
    command = build_pytest_command(suite, extra_args)
    env = suite.environment(db_settings)
    logger.info("Running suite '%s': %s", suite.name, " ".join(command))
    result = subprocess.run(command, cwd=root, env=env)
    return result.returncode
