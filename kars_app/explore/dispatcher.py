"""
================================================================================
KARS - Fan-Out Dispatcher
================================================================================
Runs the routed providers' searches concurrently under one shared deadline.

  - One asyncio task per provider, no task depends on another
  - A provider still pending at the deadline is cancelled and reported as
    a timeout for that provider only
  - Any provider failure is captured as its ProviderOutcome, never raised
  - Outcomes are returned in provider order, not network arrival order
================================================================================
"""

import asyncio
import logging
import time
from typing import Dict, List, Sequence

from .config import DEFAULT_TIMEOUT
from .errors import NetworkError, ProviderError, ProviderIneligible, ProviderTimeout
from .models import ExploreQuery, ProviderOutcome

logger = logging.getLogger(__name__)


# Upper bound on waiting for cancelled stragglers to unwind after the deadline
CANCEL_GRACE = 0.1


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class FanOutDispatcher:
    """
    Concurrent provider fan-out.

    Usage:
        dispatcher = FanOutDispatcher(timeout=5.0)
        outcomes = await dispatcher.dispatch(query, providers)
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def _run(self, provider, query: ExploreQuery) -> ProviderOutcome:
        """Call one provider, folding every failure into its outcome."""
        start = time.monotonic()
        try:
            records = await provider.search(query.text, query.category)
        except ProviderError as e:
            return ProviderOutcome(source=provider.id, error=e, elapsed_ms=_elapsed_ms(start))
        except ProviderIneligible:
            raise
        except Exception as e:
            logger.exception(f"{provider.id.value}: unexpected search failure")
            error = NetworkError(provider.id.value, f"{e.__class__.__name__}: {e}")
            return ProviderOutcome(source=provider.id, error=error, elapsed_ms=_elapsed_ms(start))
        return ProviderOutcome(source=provider.id, results=records, elapsed_ms=_elapsed_ms(start))

    async def dispatch(
        self,
        query: ExploreQuery,
        providers: Sequence
    ) -> List[ProviderOutcome]:
        """
        Search every provider concurrently and collect what finished in time.

        Args:
            query: Validated query
            providers: Provider instances, in provider order

        Returns:
            One ProviderOutcome per provider, in the order given (providers
            that turned ineligible mid-flight are dropped)
        """
        if not providers:
            return []

        start = time.monotonic()
        tasks: Dict[str, asyncio.Task] = {
            provider.id.value: asyncio.create_task(
                self._run(provider, query),
                name=f"explore:{provider.id.value}"
            )
            for provider in providers
        }

        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=self.timeout)
        finally:
            # Deadline passed or the caller went away: stop waiting on stragglers
            stragglers = [task for task in tasks.values() if not task.done()]
            for task in stragglers:
                task.cancel()
            if stragglers:
                await asyncio.wait(stragglers, timeout=CANCEL_GRACE)

        outcomes: List[ProviderOutcome] = []
        for provider in providers:
            task = tasks[provider.id.value]
            if task not in done or task.cancelled():
                error = ProviderTimeout(
                    provider.id.value,
                    f"no response within {self.timeout:.1f}s"
                )
                outcome = ProviderOutcome(
                    source=provider.id,
                    error=error,
                    elapsed_ms=_elapsed_ms(start)
                )
            elif isinstance(task.exception(), ProviderIneligible):
                logger.debug(f"{provider.id.value}: became ineligible, skipped")
                continue
            else:
                outcome = task.result()

            if outcome.error:
                logger.warning(
                    f"{provider.id.value}: {outcome.error.kind} after {outcome.elapsed_ms}ms "
                    f"({outcome.error.message})"
                )
            outcomes.append(outcome)

        return outcomes
