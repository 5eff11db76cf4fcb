from __future__ import annotations

import time
from typing import Any

from stakeholder.services import logger as log_service
from stakeholder.services.prompt_store import render_prompt
from stakeholder.services.retry import RetryCallback, RetryPolicy


class BaseAgent:
    """One outbound Messages API call wrapped in a retry policy.

    Subclasses set ``name`` and ``system_prompt_key`` and build the user
    message; every attempt is logged with its token usage and latency.
    """

    name: str = "base"
    system_prompt_key: str = ""

    def __init__(
        self,
        client: Any,
        *,
        model: str,
        max_tokens: int = 4000,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.retry_policy = retry_policy or RetryPolicy(name=self.name)

    @property
    def system_prompt(self) -> str:
        return render_prompt(self.system_prompt_key)

    async def _create(
        self,
        user_message: str,
        *,
        on_retry: RetryCallback | None = None,
        **extra: Any,
    ) -> Any:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": self.system_prompt,
            "messages": [{"role": "user", "content": user_message}],
            **extra,
        }

        async def attempt() -> Any:
            t0 = time.monotonic()
            try:
                response = await self.client.messages.create(**kwargs)
            except Exception as e:
                log_service.log_llm_call(
                    model=self.model,
                    caller=self.name,
                    duration_ms=int((time.monotonic() - t0) * 1000),
                    status="error",
                    error=str(e),
                )
                raise
            usage = getattr(response, "usage", None)
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                input_tokens=int(getattr(usage, "input_tokens", 0) or 0) if usage else 0,
                output_tokens=int(getattr(usage, "output_tokens", 0) or 0) if usage else 0,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            return response

        return await self.retry_policy.execute(attempt, on_retry=on_retry)
