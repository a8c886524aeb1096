"""
Pytest configuration and shared fixtures for zapflow tests.
"""
import pytest
from typing import Dict, Any, List
from unittest.mock import AsyncMock

from zapflow.flow.engine import ConversationEngine
from zapflow.flow.triggers import TriggerMatcher
from zapflow.models.flow import Flow, DEFAULT_START_LABEL, DEFAULT_END_LABEL
from zapflow.services.database import InMemoryFlowRepository
from zapflow.services.session_store import SessionStore


@pytest.fixture
def linear_flow_config() -> Dict[str, Any]:
    """Start followed by three messages that do not wait, then end."""
    return {
        "id": "linear",
        "name": "Boas-vindas",
        "nodes": [
            {"id": "start", "type": "start", "data": {"label": DEFAULT_START_LABEL}},
            {"id": "m1", "type": "message", "data": {"label": "Olá!"}},
            {"id": "m2", "type": "message", "data": {"label": "Como vai?"}},
            {"id": "m3", "type": "message", "data": {"label": "Tudo certo."}},
            {"id": "end", "type": "end", "data": {"label": "Até logo!"}}
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "m1"},
            {"id": "e2", "source": "m1", "target": "m2"},
            {"id": "e3", "source": "m2", "target": "m3"},
            {"id": "e4", "source": "m3", "target": "end"}
        ]
    }


@pytest.fixture
def list_flow_config() -> Dict[str, Any]:
    """List node with two options wired through source handles."""
    return {
        "id": "cores",
        "name": "Cores",
        "nodes": [
            {"id": "start", "type": "start", "data": {"label": DEFAULT_START_LABEL}},
            {
                "id": "menu",
                "type": "list",
                "data": {
                    "label": "Escolha uma cor",
                    "options": [
                        {"id": "A", "text": "Red"},
                        {"id": "B", "text": "Blue", "description": "Cor do céu"}
                    ]
                }
            },
            {"id": "red", "type": "message", "data": {"label": "Você escolheu vermelho"}},
            {"id": "blue", "type": "message", "data": {"label": "Você escolheu azul"}},
            {"id": "end", "type": "end", "data": {"label": DEFAULT_END_LABEL}}
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "menu"},
            {"id": "e2", "source": "menu", "target": "red", "sourceHandle": "A"},
            {"id": "e3", "source": "menu", "target": "blue", "sourceHandle": "B"},
            {"id": "e4", "source": "red", "target": "end"},
            {"id": "e5", "source": "blue", "target": "end"}
        ]
    }


@pytest.fixture
def conditional_flow_config() -> Dict[str, Any]:
    """Yes/no question routed by node triggers."""
    return {
        "id": "pergunta",
        "name": "Pergunta",
        "nodes": [
            {"id": "start", "type": "start", "data": {"label": DEFAULT_START_LABEL}},
            {
                "id": "ask",
                "type": "conditional",
                "data": {
                    "label": "Deseja continuar?",
                    "gatilhos": [
                        {"tipo": "texto", "valor": "sim", "proximoNoId": "yes", "resposta": "Perfeito"},
                        {"tipo": "texto", "valor": "não", "proximoNoId": "no"}
                    ]
                }
            },
            {"id": "yes", "type": "message", "data": {"label": "Ótimo!"}},
            {"id": "no", "type": "message", "data": {"label": "Tudo bem."}},
            {"id": "end", "type": "end", "data": {"label": "Obrigado!"}}
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "ask"},
            {"id": "e2", "source": "yes", "target": "end"},
            {"id": "e3", "source": "no", "target": "end"}
        ]
    }


@pytest.fixture
def linear_flow(linear_flow_config) -> Flow:
    return Flow(**linear_flow_config)


@pytest.fixture
def list_flow(list_flow_config) -> Flow:
    return Flow(**list_flow_config)


@pytest.fixture
def conditional_flow(conditional_flow_config) -> Flow:
    return Flow(**conditional_flow_config)


@pytest.fixture
def repository(linear_flow, list_flow, conditional_flow) -> InMemoryFlowRepository:
    """In-memory storage holding the three sample flows."""
    return InMemoryFlowRepository([linear_flow, list_flow, conditional_flow])


@pytest.fixture
def whatsapp() -> AsyncMock:
    """Outbound gateway that accepts every message."""
    service = AsyncMock()
    service.send_text.return_value = {"success": True}
    service.send_list.return_value = {"success": True}
    return service


@pytest.fixture
def products() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def triggers() -> TriggerMatcher:
    matcher = TriggerMatcher()
    matcher.add_trigger("oi", "linear")
    matcher.add_trigger("cores", "cores")
    matcher.add_trigger("pergunta", "pergunta")
    return matcher


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore(timeout_seconds=1800, sweep_interval=300)


@pytest.fixture
def engine(repository, whatsapp, products, triggers, sessions) -> ConversationEngine:
    """Conversation engine wired to in-memory collaborators."""
    return ConversationEngine(
        repository=repository,
        whatsapp=whatsapp,
        products=products,
        triggers=triggers,
        sessions=sessions
    )


@pytest.fixture
def sent_texts(whatsapp):
    """Texts sent through the gateway, in order."""
    def _sent() -> List[str]:
        return [call.args[1] for call in whatsapp.send_text.await_args_list]
    return _sent
