"""
Conversation Engine - Walks flow graphs as users exchange messages with the bot.

One session per user. Every inbound event of a user is handled to completion
while holding that user's lock; different users run concurrently.
"""
import logging
from typing import Optional, Any, Dict, List, Callable, Awaitable

from ..core.exceptions import FlowNotFoundError, ProductNotFoundError
from ..models.flow import (
    Flow, FlowNode, NodeType, BotMessages, ProductNodeData,
    DEFAULT_START_LABEL, DEFAULT_END_LABEL
)
from ..models.product import Product
from .evaluator import ResponseEvaluator, CLARIFICATION_RESPONSES, CART_RESPONSES
from .navigator import next_node, find_list_option
from .result import FlowExecutionResult
from .session import ConversationSession
from .triggers import TriggerMatcher, load_flow_triggers

logger = logging.getLogger(__name__)

NodeHandler = Callable[[ConversationSession, Flow, FlowNode], Awaitable[Optional[str]]]


def format_product_message(product: Product, data: ProductNodeData) -> str:
    """Compose the WhatsApp text describing a product"""
    text = f"*{product.name}*\n\n"

    if data.show_description and product.description:
        text += f"{product.description}\n\n"

    if data.show_price and product.price:
        text += f"*Preço:* {product.formatted_price}\n\n"

    if data.custom_text:
        text += f"{data.custom_text}\n\n"

    return text.rstrip()


class ConversationEngine:
    """
    Flow execution state machine.

    Features:
    - Flow start from flow-level triggers, with fallback to the newest active flow
    - Node dispatch through a handler registry
    - Node trigger routing with auto-replies
    - Out-of-context detection and yes/no recovery dialog
    - Expiry notices for sessions removed by the sweep
    """

    # Nodes processed in a single event before the conversation is cut short
    MAX_STEPS_PER_EVENT = 100

    def __init__(
        self,
        repository: Any,
        whatsapp: Any,
        products: Any,
        triggers: TriggerMatcher,
        sessions: Any,
        messages: Optional[BotMessages] = None
    ):
        """
        Initialize the engine.

        Args:
            repository: Flow storage (get_flow_by_id, find_most_recent_active_flow)
            whatsapp: Outbound gateway (send_text, send_list)
            products: Product lookup (get_product_by_id)
            triggers: Flow-level trigger matcher
            sessions: Session store
            messages: User-facing texts
        """
        self.repository = repository
        self.whatsapp = whatsapp
        self.products = products
        self.triggers = triggers
        self.sessions = sessions
        self.messages = messages or BotMessages()
        self.evaluator = ResponseEvaluator()

        # Handler registry
        self._handlers: Dict[str, NodeHandler] = self._register_handlers()

    def _register_handlers(self) -> Dict[str, NodeHandler]:
        """Register all node type handlers"""
        return {
            NodeType.START.value: self._handle_start,
            NodeType.MESSAGE.value: self._handle_message,
            NodeType.LIST.value: self._handle_list,
            NodeType.CONDITIONAL.value: self._handle_conditional,
            NodeType.PRODUCT.value: self._handle_product,
            NodeType.END.value: self._handle_end,
        }

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Load flow triggers and start the session sweep"""
        await load_flow_triggers(self.repository, self.triggers)
        await self.sessions.start_sweeper(self.on_session_expired)

    async def stop(self) -> None:
        await self.sessions.stop_sweeper()

    async def on_session_expired(self, session: ConversationSession) -> None:
        """Notify a user whose session was removed for inactivity"""
        logger.info(f"Session of {session.user_id} expired [flow: {session.flow_id}]")
        await self._send_text(session.user_id, self.messages.session_expired, session.instance_name)

    # ==================== Entry points ====================

    async def handle_inbound_message(
        self,
        user_id: str,
        text: str,
        instance_name: Optional[str] = None
    ) -> None:
        """
        Handle one inbound user message.

        Never raises: failures are logged and turned into an apology.
        """
        text = text or ""

        async with self.sessions.lock_for(user_id):
            try:
                session = self.sessions.get(user_id)

                if session is None:
                    await self._handle_new_conversation(user_id, text, instance_name)
                elif session.is_awaiting_clarification:
                    await self._handle_clarification(session, text)
                else:
                    await self._handle_response(session, text)

            except FlowNotFoundError as e:
                logger.warning(f"Flow not found while handling message of {user_id}: {e}")
                self.sessions.delete(user_id)
                await self._send_text(user_id, self.messages.flow_not_found, instance_name)

            except Exception as e:
                logger.exception(f"Error handling message of {user_id}: {e}")
                await self._send_text(user_id, self.messages.technical_problem, instance_name)

    async def start_flow(
        self,
        flow_id: str,
        user_id: str,
        message: Optional[str] = None,
        instance_name: Optional[str] = None
    ) -> FlowExecutionResult:
        """
        Start a flow for a contact, replacing any session they have.

        Returns:
            FlowExecutionResult with the node where the conversation stopped
        """
        async with self.sessions.lock_for(user_id):
            try:
                flow = await self.repository.get_flow_by_id(flow_id)
            except FlowNotFoundError as e:
                return FlowExecutionResult.failed(flow_id, "FLOW_NOT_FOUND", str(e))
            except Exception as e:
                logger.exception(f"Error loading flow {flow_id}: {e}")
                return FlowExecutionResult.failed(flow_id, str(e), "Erro ao executar o fluxo")

            return await self._start_flow(flow, user_id, message, instance_name)

    async def process_node(self, user_id: str, flow: Flow, node_id: str) -> None:
        """
        Process a node and every node reached without waiting for the user.

        Stops when a node waits for a reply or the session is destroyed.
        """
        current_id: Optional[str] = node_id
        steps = 0

        while current_id is not None:
            session = self.sessions.get(user_id)
            if session is None:
                return

            if steps >= self.MAX_STEPS_PER_EVENT:
                logger.warning(
                    f"Flow {flow.id} processed {steps} nodes without waiting, "
                    f"stopping at '{current_id}' [user: {user_id}]"
                )
                await self._finish(session, self.messages.unexpected_end)
                return

            node = flow.get_node(current_id)
            if node is None:
                logger.warning(f"Node not found: {current_id} [flow: {flow.id}]")
                await self._finish(session, self.messages.node_not_found)
                return

            session.move_to_node(node.id)
            handler = self._handlers.get(node.type, self._handle_unknown)
            current_id = await handler(session, flow, node)
            steps += 1

    # ==================== Conversation states ====================

    async def _handle_new_conversation(
        self,
        user_id: str,
        text: str,
        instance_name: Optional[str]
    ) -> None:
        flow_id = self.triggers.resolve(text)

        if flow_id:
            logger.info(f"Trigger matched flow {flow_id} for {user_id}")
            flow = await self.repository.get_flow_by_id(flow_id)
        else:
            flow = await self.repository.find_most_recent_active_flow()
            if flow is None:
                await self._send_text(user_id, self.messages.not_understood, instance_name)
                return
            logger.info(f"No trigger matched, starting most recent active flow {flow.id} for {user_id}")

        result = await self._start_flow(flow, user_id, text, instance_name)
        if result.error == "START_NODE_NOT_FOUND":
            await self._send_text(user_id, self.messages.flow_without_start, instance_name)
        elif not result.success:
            await self._send_text(user_id, self.messages.technical_problem, instance_name)

    async def _start_flow(
        self,
        flow: Flow,
        user_id: str,
        message: Optional[str],
        instance_name: Optional[str]
    ) -> FlowExecutionResult:
        start_node = flow.get_start_node()
        if start_node is None:
            logger.warning(f"Flow {flow.id} has no start node")
            return FlowExecutionResult.failed(
                flow.id, "START_NODE_NOT_FOUND", "Nó de início não encontrado no fluxo"
            )

        self.sessions.create(
            user_id,
            flow.id,
            start_node.id,
            instance_name=instance_name or flow.instance_name,
            context={"initial_message": message}
        )

        try:
            await self.process_node(user_id, flow, start_node.id)
        except Exception as e:
            logger.exception(f"Error executing flow {flow.id} for {user_id}: {e}")
            return FlowExecutionResult.failed(flow.id, str(e), "Erro ao executar o fluxo")

        session = self.sessions.get(user_id)
        return FlowExecutionResult.started(flow.id, session.current_node_id if session else None)

    async def _handle_clarification(self, session: ConversationSession, text: str) -> None:
        """Interpret the yes/no answer to the out-of-context question"""
        if self.evaluator.is_affirmative(text):
            logger.info(f"User {session.user_id} ended the conversation after clarification")
            await self._finish(session, self.messages.conversation_closed)
            return

        node_id = session.end_clarification()
        await self._send(session, self.messages.resume_conversation)

        flow = await self.repository.get_flow_by_id(session.flow_id)
        await self.process_node(session.user_id, flow, node_id)

    async def _handle_response(self, session: ConversationSession, text: str) -> None:
        """Route a reply given to the current node"""
        flow = await self.repository.get_flow_by_id(session.flow_id)
        node = flow.get_node(session.current_node_id)

        if node is None:
            logger.warning(f"Current node {session.current_node_id} missing from flow {flow.id}")
            await self._finish(session, self.messages.node_not_found)
            return

        if self.evaluator.is_out_of_context(text, session.expected_responses):
            session.begin_clarification(CLARIFICATION_RESPONSES)
            await self._send(session, self.messages.out_of_context)
            return

        session.touch()
        triggers = node.data.triggers
        trigger = self.evaluator.match_trigger(text, triggers)

        if trigger is not None and trigger.reply:
            await self._send(session, trigger.reply)

        selector = self._selector_for(node, text, trigger, bool(triggers))
        next_id = next_node(flow, node.id, selector=selector, trigger=trigger)

        if next_id is None:
            await self._finish(session, self.messages.conversation_finished)
            return

        await self.process_node(session.user_id, flow, next_id)

    def _selector_for(self, node: FlowNode, text: str, trigger, has_triggers: bool) -> Optional[str]:
        """Value matched against option ids and edge handles"""
        if node.type == NodeType.LIST.value:
            option = find_list_option(node, text)
            if option is not None:
                return option.id
            return None
        if trigger is not None:
            return trigger.value
        if has_triggers:
            return None
        return text.strip() or None

    # ==================== Node handlers ====================

    async def _handle_start(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle START node - optional greeting, then move on"""
        if node.label and node.label != DEFAULT_START_LABEL:
            await self._send(session, node.label)

        next_id = next_node(flow, node.id)
        if next_id is None:
            await self._finish(session, self.messages.incomplete_flow)
        return next_id

    async def _handle_message(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle MESSAGE node - send the label, then wait or move on"""
        await self._send(session, node.label or self.messages.empty_message)

        if node.data.awaits_response:
            triggers = node.data.triggers
            session.await_responses(self.evaluator.expected_from_triggers(triggers), triggers)
            return None

        return await self._advance(session, flow, node, closing=self.messages.conversation_finished)

    async def _handle_list(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle LIST node - send an interactive list and wait for a choice"""
        options = node.data.options

        if not options:
            await self._send(session, self.messages.empty_list)
            return await self._advance(session, flow, node)

        await self._send_list(
            session,
            title=self.messages.list_title,
            description=node.label or self.messages.list_prompt,
            options=[
                {"id": option.id, "text": option.text, "description": option.description}
                for option in options
            ]
        )

        expected = [option.id for option in options] + [option.text for option in options]
        session.await_responses(expected, node.data.triggers)
        return None

    async def _handle_conditional(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle CONDITIONAL node - ask the question and wait"""
        await self._send(session, node.label or self.messages.conditional_prompt)

        triggers = node.data.triggers
        session.await_responses(self.evaluator.expected_from_triggers(triggers), triggers)
        return None

    async def _handle_product(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle PRODUCT node - show a product, optionally offer the cart"""
        data = node.data

        if not data.product_id:
            await self._send(session, self.messages.product_not_configured)
            return await self._advance(session, flow, node)

        try:
            product = await self.products.get_product_by_id(data.product_id, data.provider_name)
        except ProductNotFoundError as e:
            logger.warning(f"Product node '{node.id}': {e}")
            await self._send(session, self.messages.product_unavailable)
            return await self._advance(session, flow, node)
        except Exception as e:
            logger.exception(f"Error fetching product {data.product_id}: {e}")
            await self._send(session, self.messages.product_unavailable)
            return await self._advance(session, flow, node)

        await self._send(session, format_product_message(product, data))

        if data.show_image and product.image_url:
            await self._send(session, product.image_url)

        if data.add_to_cart_button:
            await self._send(session, self.messages.cart_prompt)
            session.await_responses(CART_RESPONSES, data.triggers)
            return None

        return await self._advance(session, flow, node)

    async def _handle_end(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle END node - optional farewell, then terminate"""
        if node.label and node.label != DEFAULT_END_LABEL:
            await self._send(session, node.label)

        self.sessions.delete(session.user_id)
        logger.info(f"Flow {flow.id} finished for {session.user_id} at node '{node.id}'")
        return None

    async def _handle_unknown(self, session: ConversationSession, flow: Flow, node: FlowNode) -> Optional[str]:
        """Handle unknown node types - report and try to move on"""
        logger.warning(f"Unknown node type: {node.type} [node: {node.id}]")
        await self._send(session, self.messages.unsupported_node.format(node_type=node.type))
        return await self._advance(session, flow, node)

    # ==================== Helpers ====================

    async def _advance(
        self,
        session: ConversationSession,
        flow: Flow,
        node: FlowNode,
        closing: Optional[str] = None
    ) -> Optional[str]:
        """Next node without a selector; a dead end closes the session"""
        next_id = next_node(flow, node.id)
        if next_id is None:
            logger.info(f"Dead end at node '{node.id}' [flow: {flow.id}, user: {session.user_id}]")
            await self._finish(session, closing or self.messages.unexpected_end)
        return next_id

    async def _finish(self, session: ConversationSession, message: str) -> None:
        """Send a closing message and destroy the session"""
        await self._send(session, message)
        self.sessions.delete(session.user_id)

    async def _send(self, session: ConversationSession, text: str) -> Dict[str, Any]:
        return await self._send_text(session.user_id, text, session.instance_name)

    async def _send_text(self, user_id: str, text: str, instance_name: Optional[str] = None) -> Dict[str, Any]:
        """Send a text message; failures are logged and not retried"""
        try:
            result = await self.whatsapp.send_text(user_id, text, instance=instance_name)
        except Exception as e:
            logger.exception(f"Error sending message to {user_id}: {e}")
            return {"success": False, "error": str(e)}

        if not result or not result.get("success"):
            logger.error(f"Failed to send message to {user_id}: {(result or {}).get('error')}")
        return result or {"success": False}

    async def _send_list(
        self,
        session: ConversationSession,
        title: str,
        description: str,
        options: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        try:
            result = await self.whatsapp.send_list(
                session.user_id,
                title=title,
                description=description,
                options=options,
                instance=session.instance_name,
                section_title=self.messages.list_section_title
            )
        except Exception as e:
            logger.exception(f"Error sending list to {session.user_id}: {e}")
            return {"success": False, "error": str(e)}

        if not result or not result.get("success"):
            logger.error(f"Failed to send list to {session.user_id}: {(result or {}).get('error')}")
        return result or {"success": False}


def create_conversation_engine(
    repository: Any,
    whatsapp: Any,
    products: Any,
    triggers: Optional[TriggerMatcher] = None,
    sessions: Any = None,
    messages: Optional[BotMessages] = None
) -> ConversationEngine:
    """Factory function to create a ConversationEngine"""
    from ..services.session_store import SessionStore

    return ConversationEngine(
        repository=repository,
        whatsapp=whatsapp,
        products=products,
        triggers=triggers if triggers is not None else TriggerMatcher(),
        sessions=sessions if sessions is not None else SessionStore(),
        messages=messages
    )
