"""
Pitch Pipeline Orchestrator

The central coordinator that bridges:
1. Run invocation (seed idea or submitted script + RunOptions)
2. Stage registry (agents, prompts, gates, derived constraints)
3. Persistence (checkpoint slot, run history)

Responsibilities:
- Iterates the stage registry strictly in order, threading one RunContext
- Invokes each stage's agent through the reasoning gateway
- Runs rejection pivots and score revision loops at gated stages
- Checkpoints after every completed stage and resumes strictly after the last one
- Honors the cancellation token before every stage and around every gateway call
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from pitch_pipeline import config
from pitch_pipeline.agents import get_agent
from pitch_pipeline.cancellation import CancellationToken
from pitch_pipeline.errors import GatewayFailure, PipelineError, RunCancelled
from pitch_pipeline.gates import run_rejection_gate, run_score_gate
from pitch_pipeline.knowledge import retrieve_context
from pitch_pipeline.revision import RevisionLoop
from pitch_pipeline.signals import detect_verdict_veto, extract_field, sanitize_final_output
from pitch_pipeline.state import (
    CheckpointManager,
    RunContext,
    RUN_STATUS_CANCELLED,
    RUN_STATUS_COMPLETED,
    RUN_STATUS_FAILED,
    RUN_STATUS_RUNNING,
)
from pitch_pipeline.workflows.pipeline import (
    ARTIFACT_KEY,
    GATE_REJECTION,
    GATE_SCORE,
    StageDefinition,
    stages_after,
    stages_for_mode,
)

logger = logging.getLogger(__name__)

# Submitted scripts can be long; only their opening is used as the retrieval query
KNOWLEDGE_QUERY_CHARS = 500


@dataclass
class Artifact:
    """The sanitized final output of a completed run."""

    text: str
    seed_input: str
    unresolved_gates: List[dict] = field(default_factory=list)
    outputs: dict = field(default_factory=dict)
    constraints: dict = field(default_factory=dict)
    history_id: Optional[str] = None

    @property
    def best_effort(self) -> bool:
        return bool(self.unresolved_gates)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "seed_input": self.seed_input,
            "unresolved_gates": [dict(g) for g in self.unresolved_gates],
            "best_effort": self.best_effort,
            "outputs": dict(self.outputs),
            "constraints": dict(self.constraints),
            "history_id": self.history_id,
        }


class PitchOrchestrator:
    """
    Runs a pitch or script-assessment pipeline end to end.
    One orchestrator may serve many runs; each run owns its RunContext.
    """

    def __init__(self, gateway, checkpoint_store=None, history=None, retriever=None,
                 stages: List[StageDefinition] = None, checkpoint_slot: str = None,
                 artifact_key: str = ARTIFACT_KEY):
        self.gateway = gateway
        self.checkpoints = CheckpointManager(checkpoint_store, checkpoint_slot) if checkpoint_store is not None else None
        self.history = history
        self.retriever = retriever
        # None selects the registered stage list for each run's mode
        self.stages = list(stages) if stages is not None else None
        self.artifact_key = artifact_key

    def stages_for(self, mode: str = config.MODE_PITCH) -> List[StageDefinition]:
        return self.stages if self.stages is not None else stages_for_mode(mode)

    # --- Run Lifecycle ---

    async def run(self, seed_input: str, options: Optional[config.RunOptions] = None,
                  token: Optional[CancellationToken] = None, resume: bool = True,
                  on_stage: Optional[Callable] = None) -> Artifact:
        """
        Execute (or resume) a run and return its artifact.

        on_stage(stage, completed, total) is called after each stage is checkpointed.
        Raises RunCancelled, GatewayFailure, DomainRejection or ScoreBelowThreshold.
        A failed or cancelled run keeps whatever checkpoint it had written.
        """
        token = token or CancellationToken()
        token.raise_if_cancelled()

        ctx, last_completed, started_at = self._start(seed_input, options, resume)
        ctx.status = RUN_STATUS_RUNNING
        if not ctx.knowledge:
            ctx.knowledge = retrieve_context(self.retriever, seed_input[:KNOWLEDGE_QUERY_CHARS])

        stages = self.stages_for(ctx.options.mode)
        remaining = stages_after(last_completed, stages)
        logger.info("[pipeline] %s run: %d of %d stages remaining",
                    ctx.options.mode, len(remaining), len(stages))

        try:
            for stage in remaining:
                token.raise_if_cancelled(stage.key)
                await self._execute_stage(stage, ctx, token)
                if self.checkpoints:
                    self.checkpoints.save(ctx, stage.key, started_at)
                if on_stage:
                    on_stage(stage, stages.index(stage) + 1, len(stages))
        except RunCancelled as e:
            ctx.status = RUN_STATUS_CANCELLED
            logger.info("[pipeline] cancelled at %s", e.stage_key)
            raise
        except PipelineError as e:
            ctx.status = RUN_STATUS_FAILED
            logger.error("[pipeline] run failed: %s", e)
            raise

        return self._complete(ctx)

    async def submit(self, seed_input: str, options: Optional[config.RunOptions] = None,
                     token: Optional[CancellationToken] = None, resume: bool = True,
                     on_stage: Optional[Callable] = None) -> dict:
        """Run and report the outcome as a status dict instead of raising."""
        try:
            artifact = await self.run(seed_input, options, token=token, resume=resume, on_stage=on_stage)
            return {"status": RUN_STATUS_COMPLETED, "artifact": artifact.to_dict()}
        except RunCancelled as e:
            return {"status": RUN_STATUS_CANCELLED, "stage": e.stage_key, "message": str(e)}
        except PipelineError as e:
            return {"status": RUN_STATUS_FAILED, "error": str(e), "error_type": type(e).__name__}

    def _start(self, seed_input: str, options: Optional[config.RunOptions], resume: bool):
        """Build a fresh RunContext, or rebuild one from the checkpoint slot."""
        requested_mode = options.mode if options is not None else None
        options = options or config.RunOptions()
        checkpoint = self.checkpoints.load() if (resume and self.checkpoints) else None

        if checkpoint is not None:
            checkpoint_mode = checkpoint.standing_directives.get("mode", config.MODE_PITCH)
            stage_keys = [s.key for s in self.stages_for(checkpoint_mode)]
            if requested_mode is not None and requested_mode != checkpoint_mode:
                logger.warning("[pipeline] checkpoint belongs to a %s run, starting a fresh %s run",
                               checkpoint_mode, requested_mode)
            elif checkpoint.last_completed_stage not in stage_keys:
                logger.warning("[pipeline] checkpoint stage '%s' is not in the registry, starting over",
                               checkpoint.last_completed_stage)
            else:
                if checkpoint.seed_input != seed_input:
                    logger.warning("[pipeline] resuming a checkpoint created for a different seed input")
                ctx = RunContext.from_dict(checkpoint.context, seed_input=seed_input)
                if checkpoint.standing_directives:
                    ctx.options = config.RunOptions(**checkpoint.standing_directives)
                logger.info("[pipeline] resuming after %s", checkpoint.last_completed_stage)
                return ctx, checkpoint.last_completed_stage, checkpoint.started_at

        return RunContext(seed_input=seed_input, options=options), None, datetime.utcnow()

    def _complete(self, ctx: RunContext) -> Artifact:
        ctx.status = RUN_STATUS_COMPLETED
        artifact = Artifact(
            text=sanitize_final_output(ctx.get(self.artifact_key)),
            seed_input=ctx.seed_input,
            unresolved_gates=[dict(g) for g in ctx.unresolved_gates],
            outputs=dict(ctx.outputs),
            constraints=dict(ctx.constraints),
        )
        if self.checkpoints:
            self.checkpoints.clear()
        if self.history is not None:
            try:
                entry = self.history.append(ctx.seed_input, artifact.text)
                artifact.history_id = entry.get("id")
            except Exception as e:
                logger.warning("[pipeline] history append failed: %s", e)
        if artifact.unresolved_gates:
            logger.warning("[pipeline] completed best-effort with %d unresolved gate(s)",
                           len(artifact.unresolved_gates))
        else:
            logger.info("[pipeline] completed")
        return artifact

    # --- Stage Execution ---

    async def _invoke(self, agent_name: str, task_text: str, token: CancellationToken, stage_key: str) -> str:
        agent = get_agent(agent_name)
        return await agent.run(task_text, self.gateway, token=token, stage_key=stage_key)

    async def _execute_stage(self, stage: StageDefinition, ctx: RunContext, token: CancellationToken):
        logger.info("[pipeline] stage %s (%s)", stage.key, stage.label)
        try:
            text = await self._invoke(stage.agent_name, stage.build_prompt(ctx), token, stage.key)
        except GatewayFailure as e:
            if not stage.optional:
                raise
            logger.warning("[pipeline] optional stage %s skipped: %s", stage.key, e)
            text = stage.fallback_text

        gate = stage.gate
        if gate is not None and gate.kind == GATE_REJECTION:
            result = await self._rejection_gate(stage, ctx, text, token)
            text = result.text
        elif gate is not None and gate.kind == GATE_SCORE:
            result = await self._score_gate(stage, ctx, text, token)
            text = result.text

        ctx.record(stage.output_key, text)
        for rule in stage.derives:
            ctx.set_constraint(rule.name, extract_field(text, rule.labels, rule.stop_chars))

    async def _rejection_gate(self, stage: StageDefinition, ctx: RunContext, text: str,
                              token: CancellationToken):
        options = ctx.options

        async def pivot(pivot_number: int, category: str, rejected_text: str) -> str:
            task = stage.gate.pivot_prompt(ctx, stage.key, category, rejected_text,
                                           pivot_number, options.max_revisions)
            return await self._invoke(stage.agent_name, task, token, stage.key)

        return await run_rejection_gate(ctx, stage.key, text, pivot, options.max_revisions,
                                        on_exhausted=options.on_exhausted)

    async def _score_gate(self, stage: StageDefinition, ctx: RunContext, critique: str,
                          token: CancellationToken):
        gate = stage.gate
        options = ctx.options
        threshold = gate.threshold if gate.threshold is not None else options.score_threshold
        loop = RevisionLoop(
            threshold,
            options.max_revisions,
            veto=detect_verdict_veto if gate.veto else None,
            stage_key=stage.key,
        )

        async def draft(index: int, previous) -> str:
            revision = index - 1
            directives = ""
            if gate.director:
                directives = await self._invoke(
                    gate.director,
                    gate.director_prompt(ctx, revision, options.max_revisions, previous.draft,
                                         previous.critique, previous.score),
                    token, stage.key,
                )
            task = gate.revise_prompt(ctx, revision, options.max_revisions, previous.draft,
                                      previous.critique, previous.score, directives)
            return await self._invoke(gate.producer_agent, task, token, stage.key)

        async def critique_fn(index: int, draft_text: str, previous) -> str:
            task = gate.review_prompt(ctx, index - 1, options.max_revisions, draft_text,
                                      previous.critique, previous.score)
            return await self._invoke(stage.agent_name, task, token, stage.key)

        return await run_score_gate(ctx, stage.key, critique, loop, draft, critique_fn,
                                    producer_key=gate.producer_key, on_exhausted=options.on_exhausted)
