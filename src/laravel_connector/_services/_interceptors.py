import inspect
from typing import Any, Callable, Optional, TypeVar

from .._utils._request_spec import RequestSpec
from ..models.envelope import ErrorEnvelope, ResponseEnvelope

V = TypeVar("V")


class Interceptor:
    """Base class for request/response/error hooks.

    Subclasses override any subset of the hooks. Each hook receives a value and
    returns its replacement; it may be a plain method or a coroutine. Objects
    that do not inherit from this class work too, as long as the hooks they do
    define have the same names and signatures.
    """

    on_request: Optional[Callable[[RequestSpec], Any]] = None
    on_response: Optional[Callable[[ResponseEnvelope[Any]], Any]] = None
    on_error: Optional[Callable[[ErrorEnvelope], Any]] = None


class InterceptorChain:
    """Ordered, mutable collection of interceptors owned by one client."""

    def __init__(self) -> None:
        self._interceptors: list[Any] = []

    def register(self, interceptor: Any) -> Callable[[], None]:
        """Append an interceptor and return a function that removes it again.

        The returned disposer removes that exact instance and is safe to call
        more than once.

        Example:
            ```python
            remove = client.interceptors.register(LoggingInterceptor())
            ...
            remove()
            ```
        """
        self._interceptors.append(interceptor)
        disposed = False

        def dispose() -> None:
            nonlocal disposed
            if disposed:
                return
            disposed = True
            for index, registered in enumerate(self._interceptors):
                if registered is interceptor:
                    del self._interceptors[index]
                    return

        return dispose

    use = register

    async def _run(self, hook_name: str, value: V) -> V:
        # snapshot so hooks may register or dispose interceptors while running
        for interceptor in list(self._interceptors):
            hook = getattr(interceptor, hook_name, None)
            if hook is None:
                continue
            result = hook(value)
            if inspect.isawaitable(result):
                result = await result
            value = result
        return value

    async def run_request(self, spec: RequestSpec) -> RequestSpec:
        return await self._run("on_request", spec)

    async def run_response(
        self, envelope: ResponseEnvelope[Any]
    ) -> ResponseEnvelope[Any]:
        return await self._run("on_response", envelope)

    async def run_error(self, error: ErrorEnvelope) -> ErrorEnvelope:
        return await self._run("on_error", error)

    def clear(self) -> None:
        self._interceptors = []

    def count(self) -> int:
        return len(self._interceptors)

    def __len__(self) -> int:
        return self.count()
