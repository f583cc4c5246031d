"""Generation driver: the self-correcting generate / tool-use loop.

Provides Generate, a Program that runs:

    BUILD_PROMPT -> COMPLETE -> RESOLVE -> DISPATCH
        -> DONE                   (terminal turn)
        -> COMPLETE               (function calls executed, next step)
        -> BUILD_PROMPT           (validation/assertion failure, retry)

Two counters bound the loop: attempts (max_retries) and steps per attempt
(max_steps). Validation and assertion failures are the only retryable
errors; running out of steps, an empty service response, or any other
exception ends the run immediately.

All per-invocation state lives in a RunContext, so concurrent forward()
calls on one Generate instance share nothing mutable.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from gentask.exceptions import (
    AssertionFailure,
    GenerationError,
    StepsExhaustedError,
    ValidationFailure,
)
from gentask.extract import extract_values
from gentask.generate.assembler import assemble_completion, effective_model_config
from gentask.generate.dispatcher import TASK_DONE, dispatch_function_calls
from gentask.generate.guidance import guidance_for
from gentask.generate.program import Program
from gentask.generate.resolver import (
    Assertion,
    Extractor,
    FunctionCallStrategy,
    NativeFunctionCalls,
    OutputResolver,
    SimulatedFunctionCalls,
    strip_function_fields,
)
from gentask.memory import Memory
from gentask.models.config import ForwardOptions, ModelConfig
from gentask.models.messages import ChatMessage
from gentask.prompt import PromptTemplate
from gentask.toolkit.executor import FunctionProcessor

if TYPE_CHECKING:
    from gentask.llm.protocols import CompletionService
    from gentask.memory import HistoryStore
    from gentask.models.messages import CompletionResult
    from gentask.models.signature import Field, Signature
    from gentask.toolkit.models import FunctionDefinition

logger = logging.getLogger(__name__)

PromptTemplateFactory = Callable[["Signature"], PromptTemplate]


class RunState(str, enum.Enum):
    """States of one forward() run."""

    BUILD_PROMPT = "build_prompt"
    COMPLETE = "complete"
    RESOLVE = "resolve"
    DISPATCH = "dispatch"
    DONE = "done"


@dataclass
class RunContext:
    """Mutable state of a single forward() invocation."""

    options: ForwardOptions
    service: CompletionService
    memory: HistoryStore
    resolver: OutputResolver
    model_config: ModelConfig | None = None
    state: RunState = RunState.BUILD_PROMPT
    attempt: int = 0
    step: int = 0
    extra_fields: list[Field] = field(default_factory=list)
    template: PromptTemplate | None = None
    template_hash: str | None = None
    failure: ValidationFailure | AssertionFailure | None = None
    result: CompletionResult | None = None
    retval: dict[str, Any] | None = None


class Generate(Program):
    """A self-correcting generation task bound to a signature.

    Usage::

        task = Generate(client, '"Answer briefly" question -> answer')
        task.add_assert(lambda v: len(v["answer"]) < 200, "Answer is too long")
        out = await task.forward({"question": "What is HTTP?"})
        print(out["answer"])

    With functions, the model may request calls; their results are added
    to the conversation and the model is asked again, until it calls a
    function whose name contains ``task_done`` or requests no calls.
    """

    def __init__(
        self,
        service: CompletionService,
        signature: Signature | str,
        *,
        functions: list[FunctionDefinition] | None = None,
        function_call: str | dict | None = None,
        prompt_template: PromptTemplateFactory | None = None,
        asserts: list[Assertion] | None = None,
        extractor: Extractor = extract_values,
    ) -> None:
        super().__init__(signature)
        self._service = service
        self._functions = list(functions) if functions else None
        self._function_call = function_call
        self._prompt_template: PromptTemplateFactory = prompt_template or PromptTemplate
        self._asserts: list[Assertion] = list(asserts or [])
        self._extractor = extractor
        self._processor = FunctionProcessor(self._functions) if self._functions else None
        self._strategy = self._select_strategy()
        self._strategy.prepare(self.signature)

    def _select_strategy(self) -> FunctionCallStrategy:
        if self._functions and not self._service.features().functions:
            return SimulatedFunctionCalls()
        return NativeFunctionCalls()

    @property
    def asserts(self) -> list[Assertion]:
        return list(self._asserts)

    def add_assert(
        self,
        fn: Callable[[dict[str, Any]], bool],
        message: str | None = None,
        optional: bool = False,
    ) -> None:
        """Register an assertion, evaluated after those already registered."""
        self._asserts.append(Assertion(fn=fn, message=message, optional=optional))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def forward(
        self,
        values: dict[str, Any],
        options: ForwardOptions | None = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        """Run the task for one set of input values.

        Args:
            values: Input field values.
            options: Per-invocation options.
            **overrides: Individual ForwardOptions fields, applied on top
                of *options*. ``model_config`` may be a plain dict.

        Returns:
            The output values. With an optional assertion that never
            passed, the values of the last attempt.

        Raises:
            GenerationError: Retries exhausted on a non-optional failure.
            StepsExhaustedError: The tool-use loop did not finish.
            NoResultError: The completion service returned no result.
        """
        ctx = self._new_context(options, overrides)

        while ctx.state is not RunState.DONE:
            if ctx.state is RunState.BUILD_PROMPT:
                if ctx.attempt >= ctx.options.max_retries:
                    return self._give_up(ctx)
                ctx.attempt += 1
                ctx.step = 0
                self._build_prompt(values, ctx)
                ctx.state = RunState.COMPLETE
                continue

            try:
                await self._advance(ctx)
            except (ValidationFailure, AssertionFailure) as failure:
                logger.info(
                    "Attempt %d/%d failed: %s",
                    ctx.attempt, ctx.options.max_retries, failure,
                )
                ctx.failure = failure
                ctx.extra_fields = guidance_for(failure, self.signature)
                ctx.state = RunState.BUILD_PROMPT

        assert ctx.retval is not None
        self.set_trace({**values, **ctx.retval})
        return ctx.retval

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _new_context(
        self, options: ForwardOptions | None, overrides: dict[str, Any]
    ) -> RunContext:
        if isinstance(overrides.get("model_config"), dict):
            overrides["model_config"] = ModelConfig.from_dict(overrides["model_config"])
        opts = dataclasses.replace(options or ForwardOptions(), **overrides)
        return RunContext(
            options=opts,
            service=opts.service or self._service,
            memory=opts.memory if opts.memory is not None else Memory(),
            resolver=OutputResolver(
                self.signature, self._asserts, self._strategy, self._extractor
            ),
            model_config=effective_model_config(self.signature, opts.model_config),
        )

    def _build_prompt(self, values: dict[str, Any], ctx: RunContext) -> None:
        sig_hash = self.signature.hash()
        if ctx.template is None or ctx.template_hash != sig_hash:
            ctx.template = self._prompt_template(self.signature)
            ctx.template_hash = sig_hash

        prompt = ctx.template.render(
            values,
            extra_fields=ctx.extra_fields,
            examples=self.examples,
            demos=self.demos,
        )
        ctx.memory.add(ChatMessage(role="user", content=prompt), ctx.options.session_id)

    async def _advance(self, ctx: RunContext) -> None:
        """Run one state transition of the step loop."""
        opts = ctx.options

        if ctx.state is RunState.COMPLETE:
            if ctx.step >= opts.max_steps:
                raise StepsExhaustedError(opts.max_steps)
            ctx.step += 1
            logger.debug("Attempt %d step %d", ctx.attempt, ctx.step)
            ctx.result = await assemble_completion(
                ctx.service,
                ctx.memory.history(opts.session_id),
                functions=self._functions,
                function_call=self._function_call,
                model_config=ctx.model_config,
                session_id=opts.session_id,
                trace_id=opts.trace_id,
                max_completions=opts.max_completions,
            )
            ctx.memory.add_result(ctx.result, opts.session_id)
            ctx.state = RunState.RESOLVE

        elif ctx.state is RunState.RESOLVE:
            assert ctx.result is not None
            ctx.retval = ctx.resolver.resolve(ctx.result)
            ctx.state = RunState.DISPATCH

        elif ctx.state is RunState.DISPATCH:
            assert ctx.retval is not None
            done = await dispatch_function_calls(
                ctx.retval,
                self._processor,
                ctx.memory,
                session_id=opts.session_id,
                trace_id=opts.trace_id,
                terminal=TASK_DONE,
            )
            if done is not None:
                ctx.retval = done
                ctx.state = RunState.DONE
            else:
                ctx.state = RunState.COMPLETE

    def _give_up(self, ctx: RunContext) -> dict[str, Any]:
        failure = ctx.failure
        if isinstance(failure, AssertionFailure) and failure.optional:
            logger.warning(
                "Optional assertion still failing after %d attempts: %s",
                ctx.attempt, failure,
            )
            if isinstance(self._strategy, SimulatedFunctionCalls):
                values, _, _ = strip_function_fields(failure.value)
                return values
            return failure.value
        message = failure.message if failure is not None else "no attempts made"
        raise GenerationError(f"Unable to fix validation error: {message}") from failure
