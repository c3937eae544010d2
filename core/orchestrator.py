"""Top-level application orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.notifications import NotificationCenter
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.session import InterpreterSession
from executor.safe_runner import SafeRunner
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionEngine
from interpreter.command_loader import load_command_files
from interpreter.command_registry import CommandRegistry
from interpreter.flow_controls import build_flow_commands
from interpreter.nl_resolver import LLMCommandResolver
from interpreter.sequence_runner import SequenceInterpreter
from llm.base_llm import BaseLLM
from llm.llm_factory import build_llm
from planner.plan_executor import DEFAULT_MAX_ATTEMPTS, PlanExecutor
from planner.plan_store import PlanStore
from planner.task_planner import LLMTaskPlanner
from tools.tool_registry import ToolRegistry, build_default_registry

logger = logging.getLogger("ir.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    paths: dict[str, Path]
    llm: BaseLLM
    session: InterpreterSession
    notifications: NotificationCenter
    commands: CommandRegistry
    tool_registry: ToolRegistry
    interpreter: SequenceInterpreter
    planner: LLMTaskPlanner
    plan_store: PlanStore
    plan_executor: PlanExecutor
    permissions: PermissionEngine


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root, config)
        llm = build_llm(config=config)

        session = InterpreterSession(variables=config.get("user_variables") or {})
        notifications = NotificationCenter()
        permissions = PermissionEngine(config=dict(config.get("permissions", {})))
        safe_runner = SafeRunner(
            permission_engine=permissions,
            audit_logger=AuditLogger(paths["audit_log_path"]),
            workspace_dir=paths["workspace_dir"],
        )
        tool_registry = build_default_registry(
            workspace_dir=paths["workspace_dir"],
            config=config.get("tools", {}),
            safe_runner=safe_runner,
            session=session,
            notifications=notifications,
            llm=llm,
        )

        commands = CommandRegistry(flow_commands=build_flow_commands(paths["workspace_dir"]))
        commands.register_many(tool_registry.native_commands())
        commands.register_many(load_command_files(paths["commands_dir"]))

        interpreter_cfg = config.get("interpreter", {})
        resolver = (
            LLMCommandResolver(llm)
            if interpreter_cfg.get("natural_language_fallback", True)
            else None
        )
        interpreter = SequenceInterpreter(registry=commands, session=session, resolver=resolver)

        planner = LLMTaskPlanner(llm=llm, registry=commands)
        plan_store = PlanStore(paths["plans_dir"])
        plan_store.load_all()
        plan_executor = PlanExecutor(
            interpreter=interpreter,
            planner=planner,
            notifications=notifications,
            max_attempts=int(config.get("planner", {}).get("max_attempts", DEFAULT_MAX_ATTEMPTS)),
            on_update=plan_store.save,
        )
        logger.debug("Runtime ready with %d commands", len(commands))

        return RuntimeBundle(
            config=config,
            paths=paths,
            llm=llm,
            session=session,
            notifications=notifications,
            commands=commands,
            tool_registry=tool_registry,
            interpreter=interpreter,
            planner=planner,
            plan_store=plan_store,
            plan_executor=plan_executor,
            permissions=permissions,
        )
