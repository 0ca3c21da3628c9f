"""Echo-id scenario: GET ``<MY_APP_URL><id>`` and expect the id echoed back.

Every virtual user loops: pick a random id, request it, check the status
and that the body equals the id, then sleep one second. The target base URL
comes from the ``MY_APP_URL`` environment variable and is required.

Run with:
    MY_APP_URL=http://svc/items/ echoload run
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from echoload._internal.config import load_config
from echoload._internal.errors import ConfigError
from echoload._internal.logging import get_logger
from echoload.dsl.options import RunOptions, Stage
from echoload.dsl.scenario import Scenario

if TYPE_CHECKING:
    import random
    from collections.abc import Mapping

    from echoload.dsl.http_client import Response
    from echoload.dsl.scenario import IterationContext

logger = get_logger("scenarios.echo_id")

ID_UPPER_BOUND = 10_000_000
THINK_TIME_SECONDS = 1.0
REQUEST_NAME = "GET <id>"

# 99% of requests must finish within 3000ms over the whole run.
_THRESHOLDS = {"http_req_duration": ("p(99) < 3000",)}

DEFAULT_OPTIONS = RunOptions(
    stages=(Stage(duration="15s", target=300),),
    thresholds=_THRESHOLDS,
)

# Gentler alternative: ramp up, hold, then ramp down to zero.
GRADUAL_OPTIONS = RunOptions(
    stages=(
        Stage(duration="30s", target=15),
        Stage(duration="1m", target=15),
        Stage(duration="20s", target=0),
    ),
    thresholds=_THRESHOLDS,
)

PROFILES: dict[str, RunOptions] = {
    "default": DEFAULT_OPTIONS,
    "gradual": GRADUAL_OPTIONS,
}


def random_id(rng: random.Random) -> int:
    """Return a uniform integer identifier in ``[0, 10_000_000)``."""
    return rng.randrange(ID_UPPER_BOUND)


def status_was_200(response: Response) -> bool:
    return response.status == 200


def returned_same_id(response: Response, expected_id: int) -> bool:
    return response.body == str(expected_id)


def build_scenario(
    environ: Mapping[str, str] | None = None,
    *,
    profile: str = "default",
    options: RunOptions | None = None,
) -> Scenario:
    """Validate configuration and assemble the echo-id scenario.

    Args:
        environ: Environment mapping to read ``MY_APP_URL`` from.
            Defaults to ``os.environ``.
        profile: Name of the run options profile in ``PROFILES``.
        options: Explicit run options, used instead of the profile.

    Returns:
        The ready-to-run Scenario.

    Raises:
        ConfigError: If ``MY_APP_URL`` is missing or empty, or if
            *profile* is not a known profile name.
    """
    config = load_config(environ)
    if options is None:
        options = PROFILES.get(profile)
    if options is None:
        msg = f"Unknown profile {profile!r}. Choose from: {', '.join(PROFILES)}"
        raise ConfigError(msg)
    app_url = config.app_url

    async def iteration(ctx: IterationContext) -> None:
        item_id = random_id(ctx.rng)
        response = await ctx.client.get(f"{app_url}{item_id}", name=REQUEST_NAME)
        ctx.check(
            response,
            {
                "status was 200": status_was_200,
                "returned same id": lambda r: returned_same_id(r, item_id),
            },
        )
        await ctx.sleep(THINK_TIME_SECONDS)

    logger.debug("Built echo-id scenario: url=%s, profile=%s", app_url, profile)
    return Scenario(
        name="echo-id",
        options=options,
        iteration=iteration,
        request_timeout=config.request_timeout,
    )
