# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
import time
from typing import TypeVar

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from near_lambda.exceptions import PlatformError, ReadinessTimeoutError
from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import (
    EXEC_COMMAND_SUCCESS_EXIT_CODE,
    OrchestrationPlatform,
    ServiceHandle,
)

logger = setup_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    delay_s: float

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {self.delay_s}")


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe attempt.

    `error` is set when the probe could not run at all (transport or
    platform failure); otherwise `exit_code` and `output` come from the
    command that ran inside the container.
    """

    exit_code: int | None = None
    output: str = ""
    error: Exception | None = None

    @property
    def executed(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ReadinessCheck:
    command: tuple[str, ...]
    policy: RetryPolicy


def exit_code_is_success(result: ProbeResult) -> bool:
    return result.executed and result.exit_code == EXEC_COMMAND_SUCCESS_EXIT_CODE


def raw_output(result: ProbeResult) -> str:
    return result.output


def exec_probe(
    platform: OrchestrationPlatform,
    handle: ServiceHandle,
    command: Sequence[str],
) -> Callable[[], ProbeResult]:
    """Build a probe that runs `command` inside the service's container."""

    def _probe() -> ProbeResult:
        try:
            res = platform.exec_in_service(handle, command)
        except PlatformError as e:
            logger.debug(f"Exec {list(command)} in '{handle.name}' failed: {e}")
            return ProbeResult(error=e)
        return ProbeResult(exit_code=res.exit_code, output=res.output)

    return _probe


def poll_until_ready(
    probe: Callable[[], ProbeResult],
    is_success: Callable[[ProbeResult], bool],
    extract: Callable[[ProbeResult], T],
    policy: RetryPolicy,
    *,
    target: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run `probe` until `is_success` holds or the attempt budget is spent.

    Waits `policy.delay_s` between attempts, never after the successful one.
    Exceptions raised by `probe` itself are not retried.

    Raises:
        ReadinessTimeoutError: after `policy.max_attempts` unsuccessful attempts.
    """
    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.delay_s),
        retry=retry_if_result(lambda r: not is_success(r)),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        sleep=sleep,
    )
    try:
        result = retrying(probe)
    except RetryError as e:
        raise ReadinessTimeoutError(
            e.last_attempt.attempt_number, policy.delay_s, target=target
        ) from None
    return extract(result)
