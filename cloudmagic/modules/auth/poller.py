import asyncio
import logging
from typing import Awaitable, Callable, Optional

from cloudmagic.modules.auth.schemas import AuthResult

logger = logging.getLogger(__name__)

CheckFn = Callable[[], Awaitable[AuthResult]]
ResultFn = Callable[[AuthResult], Awaitable[None]]


class VerificationPoller:
    """
    Re-checks email verification on a fixed interval while a view is open.

    start() and stop() are explicit and idempotent; the owner of the view
    calls stop() when it goes away. Polling also ends on its own once the
    check reports a verified email.
    """

    def __init__(self, check: CheckFn, on_result: ResultFn, interval: float = 5.0):
        self.check = check
        self.on_result = on_result
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> None:
        """Block until polling finishes on its own (verified) or is stopped."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            try:
                result = await self.check()
            except Exception as e:
                logger.error(f"Error in verification poll: {str(e)}")
            else:
                try:
                    await self.on_result(result)
                except Exception as e:
                    logger.info(f"Verification listener went away, polling stopped: {e}")
                    return
                if result.success and result.is_verified:
                    logger.info(f"Email verified for {result.email}, polling stopped")
                    return
            await asyncio.sleep(self.interval)
