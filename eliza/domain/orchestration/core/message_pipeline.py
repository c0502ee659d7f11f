from typing import TypedDict, List, Dict, Any, Optional, Literal
from langgraph.graph import StateGraph, END
from pydantic import BaseModel, Field
import structlog

from eliza.domain.action.base_action import HandlerCallback
from eliza.domain.formatting.context import (
    MESSAGE_HANDLER_TEMPLATE,
    SHOULD_RESPOND_TEMPLATE,
    compose_context,
)
from eliza.domain.generation.generation import generate_message_response, generate_should_respond
from eliza.domain.models.agent_state import State
from eliza.domain.models.character import ModelClass
from eliza.domain.models.memory import Memory
from eliza.domain.orchestration.core.agent_runtime import AgentRuntime
from eliza.infrastructure.observability.logging import bind_agent_context

logger = structlog.get_logger(__name__)


class WorkflowState(TypedDict, total=False):
    """State carried through the message graph"""
    message: Memory
    respond: Optional[bool]
    user_name: Optional[str]
    user_screen_name: Optional[str]
    source: Optional[str]
    callback: Optional[HandlerCallback]
    state: Optional[State]
    responses: List[Memory]
    evaluators_run: List[str]
    trace: List[str]


class PipelineResult(BaseModel):
    """Outcome of processing one inbound message"""
    responded: bool
    state: Optional[State] = None
    responses: List[Memory] = Field(default_factory=list)
    evaluators_run: List[str] = Field(default_factory=list)
    trace: List[str] = Field(default_factory=list)


class MessagePipeline:
    """Per-message workflow: identity, state, response, actions, evaluation.

    When the caller passes ``respond=None`` the model decides with a
    RESPOND/IGNORE/STOP prompt. A turn that is not answered goes straight
    to evaluation with ``did_respond=False``.
    """

    def __init__(self, runtime: AgentRuntime, template: Optional[str] = None):
        self.runtime = runtime
        self.template = template or runtime.character.templates.get("message_handler_template") or MESSAGE_HANDLER_TEMPLATE
        self.should_respond_template = (
            runtime.character.templates.get("should_respond_template") or SHOULD_RESPOND_TEMPLATE
        )
        self.workflow = self._create_workflow()

    def _create_workflow(self):
        """Create the message workflow graph"""

        workflow = StateGraph(WorkflowState)

        workflow.add_node("ensure_identity", self.ensure_identity_node)
        workflow.add_node("compose_state", self.compose_state_node)
        workflow.add_node("generate_response", self.generate_response_node)
        workflow.add_node("process_actions", self.process_actions_node)
        workflow.add_node("evaluate", self.evaluate_node)

        workflow.set_entry_point("ensure_identity")
        workflow.add_edge("ensure_identity", "compose_state")
        workflow.add_conditional_edges(
            "compose_state",
            self.route_after_compose,
            {
                "respond": "generate_response",
                "skip": "evaluate",
            }
        )
        workflow.add_edge("generate_response", "process_actions")
        workflow.add_edge("process_actions", "evaluate")
        workflow.add_edge("evaluate", END)

        return workflow.compile()

    async def ensure_identity_node(self, state: WorkflowState) -> Dict[str, Any]:
        """Ensure accounts, room and participants exist, then store the message"""
        message = state["message"]
        bind_agent_context(self.runtime.agent_id, message.room_id, message.id)
        logger.info("Received message", message_id=message.id, user_id=message.user_id)

        await self.runtime.ensure_connection(
            message.user_id,
            message.room_id,
            user_name=state.get("user_name"),
            user_screen_name=state.get("user_screen_name"),
            source=state.get("source"),
        )

        memory = await self.runtime.message_manager.add_embedding_to_memory(message)
        await self.runtime.message_manager.create_memory(memory)

        return {"trace": state.get("trace", []) + ["ensure_identity"]}

    async def compose_state_node(self, state: WorkflowState) -> Dict[str, Any]:
        composed = await self.runtime.compose_state(state["message"])
        respond = state.get("respond")

        if respond is None:
            context = compose_context(composed, self.should_respond_template)
            decision = await generate_should_respond(self.runtime, context, ModelClass.SMALL)
            respond = decision == "RESPOND"
            logger.info("Response decision", decision=decision)

        return {
            "state": composed,
            "respond": respond,
            "trace": state.get("trace", []) + ["compose_state"],
        }

    async def generate_response_node(self, state: WorkflowState) -> Dict[str, Any]:
        """Generate, store and deliver the reply"""
        runtime = self.runtime
        message = state["message"]

        context = compose_context(state["state"], self.template)
        content = await generate_message_response(runtime, context, ModelClass.LARGE)
        content = content.model_copy(update={"in_reply_to": message.id})

        response = Memory(
            user_id=runtime.agent_id,
            agent_id=runtime.agent_id,
            room_id=message.room_id,
            content=content,
        )
        response = await runtime.message_manager.add_embedding_to_memory(response)
        await runtime.message_manager.create_memory(response)

        callback = state.get("callback")
        if callback:
            await callback(content)

        refreshed = await runtime.update_recent_message_state(state["state"])
        return {
            "state": refreshed,
            "responses": [response],
            "trace": state.get("trace", []) + ["generate_response"],
        }

    async def process_actions_node(self, state: WorkflowState) -> Dict[str, Any]:
        await self.runtime.process_actions(
            state["message"],
            state.get("responses", []),
            state["state"],
            state.get("callback"),
        )
        return {"trace": state.get("trace", []) + ["process_actions"]}

    async def evaluate_node(self, state: WorkflowState) -> Dict[str, Any]:
        names = await self.runtime.evaluate(
            state["message"],
            state["state"],
            did_respond=bool(state.get("respond")),
            callback=state.get("callback"),
        )
        return {
            "evaluators_run": names,
            "trace": state.get("trace", []) + ["evaluate"],
        }

    def route_after_compose(self, state: WorkflowState) -> Literal["respond", "skip"]:
        return "respond" if state.get("respond") else "skip"

    async def process(
        self,
        message: Memory,
        respond: Optional[bool] = True,
        user_name: Optional[str] = None,
        user_screen_name: Optional[str] = None,
        source: Optional[str] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> PipelineResult:
        """Process a message through the workflow"""

        initial_state: WorkflowState = {
            "message": message,
            "respond": respond,
            "user_name": user_name,
            "user_screen_name": user_screen_name,
            "source": source,
            "callback": callback,
            "state": None,
            "responses": [],
            "evaluators_run": [],
            "trace": [],
        }

        final: Dict[str, Any] = dict(initial_state)
        async for chunk in self.workflow.astream(initial_state, stream_mode="values"):
            final = chunk

        return PipelineResult(
            responded=bool(final.get("respond")),
            state=final.get("state"),
            responses=final.get("responses", []),
            evaluators_run=final.get("evaluators_run", []),
            trace=final.get("trace", []),
        )
