"""
Flow configuration models - typed nodes, node triggers and edges
"""
import logging
import re
from enum import Enum
from typing import Optional, Any, List, Dict, Literal
from datetime import datetime
from pydantic import BaseModel, Field, PrivateAttr, SerializeAsAny, field_validator

logger = logging.getLogger(__name__)

# Labels the visual builder puts on new start/end nodes; never sent to users
DEFAULT_START_LABEL = "Início do Fluxo"
DEFAULT_END_LABEL = "Fim do fluxo"


class NodeType(str, Enum):
    """Closed set of node types understood by the engine"""
    START = "start"
    MESSAGE = "message"
    LIST = "list"
    CONDITIONAL = "conditional"
    PRODUCT = "product"
    END = "end"


class NodeTriggerType(str, Enum):
    """Node-local trigger kinds"""
    TEXT = "text"
    PATTERN = "pattern"
    ANY = "any"


# Names used by records saved by the builder
TRIGGER_TYPE_ALIASES: Dict[str, str] = {
    "texto": NodeTriggerType.TEXT.value,
    "regex": NodeTriggerType.PATTERN.value,
    "qualquer": NodeTriggerType.ANY.value,
}

KNOWN_TRIGGER_TYPES = frozenset(t.value for t in NodeTriggerType)


class Position(BaseModel):
    """Canvas position (UI only)"""

    model_config = {"extra": "allow"}

    x: float = 0
    y: float = 0


class NodeTrigger(BaseModel):
    """
    Node-local condition that routes a user reply.

    Pattern triggers are compiled once, when the node is loaded. A pattern
    that does not compile, or a type the engine does not know, is logged and
    never matches.
    """

    model_config = {"extra": "allow", "populate_by_name": True}

    type: Optional[NodeTriggerType] = Field(default=None, alias="tipo")
    value: Optional[str] = Field(default=None, alias="valor")
    reply: Optional[str] = Field(default=None, alias="resposta")
    next_node_id: Optional[str] = Field(default=None, alias="proximoNoId")

    _compiled: Optional[re.Pattern] = PrivateAttr(default=None)
    _error: Optional[str] = PrivateAttr(default=None)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, NodeTriggerType):
            return value
        lowered = str(value).strip().lower()
        lowered = TRIGGER_TYPE_ALIASES.get(lowered, lowered)
        if lowered not in KNOWN_TRIGGER_TYPES:
            logger.warning(f"Unknown node trigger type '{value}', trigger will never match")
            return None
        return lowered

    def model_post_init(self, __context: Any) -> None:
        if self.type is None:
            self._error = "unknown trigger type"
            return
        if self.type != NodeTriggerType.PATTERN or not self.value:
            return
        try:
            self._compiled = re.compile(self.value, re.IGNORECASE)
        except re.error as e:
            self._error = str(e)
            logger.warning(f"Invalid node trigger pattern '{self.value}': {e}")

    @property
    def is_valid(self) -> bool:
        """False for unknown types and for patterns that did not compile"""
        return self._error is None

    @property
    def error(self) -> Optional[str]:
        return self._error

    def matches(self, response: str) -> bool:
        """Check a user reply against this trigger (trimmed, case-insensitive)"""
        normalized = response.strip().lower()

        if self.type is None:
            return False
        if self.type == NodeTriggerType.ANY:
            return True
        if not self.value:
            return False
        if self.type == NodeTriggerType.TEXT:
            return normalized == self.value.strip().lower()
        if self._compiled is None:
            return False
        return self._compiled.search(normalized) is not None


class ListOption(BaseModel):
    """Option of an interactive list node"""

    model_config = {"extra": "allow", "populate_by_name": True}

    id: str
    text: str
    description: Optional[str] = None
    next_node_id: Optional[str] = Field(default=None, alias="proximoNoId")


# ============ NODE DATA ============

class NodeData(BaseModel):
    """Fields shared by every node type"""

    model_config = {"extra": "allow", "populate_by_name": True}

    label: Optional[str] = None
    awaits_response: bool = Field(default=False, alias="aguardaResposta")
    response_timeout: Optional[int] = Field(default=None, alias="tempoLimite")
    triggers: List[NodeTrigger] = Field(default_factory=list, alias="gatilhos")


class ListNodeData(NodeData):
    options: List[ListOption] = Field(default_factory=list)


class ConditionalNodeData(NodeData):
    condition: Optional[str] = None
    yes_label: Optional[str] = Field(default=None, alias="yesLabel")
    no_label: Optional[str] = Field(default=None, alias="noLabel")


class ProductNodeData(NodeData):
    product_id: Optional[str] = Field(default=None, alias="productId")
    provider_name: Optional[str] = Field(default=None, alias="providerName")
    show_price: bool = Field(default=True, alias="showPrice")
    show_description: bool = Field(default=True, alias="showDescription")
    show_image: bool = Field(default=True, alias="showImage")
    add_to_cart_button: bool = Field(default=False, alias="addToCartButton")
    custom_text: Optional[str] = Field(default=None, alias="customText")


# ============ NODES ============

class FlowNode(BaseModel):
    """
    Flow node. Known types are parsed into the subclasses below; any other
    type string stays a plain FlowNode so the engine can report it.
    """

    model_config = {"extra": "allow"}

    id: str
    type: str
    position: Optional[Position] = None
    data: NodeData = Field(default_factory=NodeData)

    @property
    def node_type(self) -> Optional[NodeType]:
        try:
            return NodeType(self.type)
        except ValueError:
            return None

    @property
    def label(self) -> Optional[str]:
        return self.data.label


class StartNode(FlowNode):
    type: Literal["start"] = "start"


class MessageNode(FlowNode):
    type: Literal["message"] = "message"


class ListNode(FlowNode):
    type: Literal["list"] = "list"
    data: ListNodeData = Field(default_factory=ListNodeData)


class ConditionalNode(FlowNode):
    type: Literal["conditional"] = "conditional"
    data: ConditionalNodeData = Field(default_factory=ConditionalNodeData)


class ProductNode(FlowNode):
    type: Literal["product"] = "product"
    data: ProductNodeData = Field(default_factory=ProductNodeData)


class EndNode(FlowNode):
    type: Literal["end"] = "end"


NODE_MODELS: Dict[str, type] = {
    NodeType.START.value: StartNode,
    NodeType.MESSAGE.value: MessageNode,
    NodeType.LIST.value: ListNode,
    NodeType.CONDITIONAL.value: ConditionalNode,
    NodeType.PRODUCT.value: ProductNode,
    NodeType.END.value: EndNode,
}


def build_node(raw: Any) -> FlowNode:
    """Parse a raw node dict into the model matching its type tag"""
    if isinstance(raw, FlowNode):
        return raw

    data = dict(raw)
    node_type = str(data.get("type") or "").strip().lower()
    model = NODE_MODELS.get(node_type)
    if model is None:
        return FlowNode.model_validate(data)

    data["type"] = node_type
    return model.model_validate(data)


class FlowEdge(BaseModel):
    """Directed connection between two nodes"""

    model_config = {"extra": "allow", "populate_by_name": True}

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")


class Flow(BaseModel):
    """A resolved flow graph (nodes + edges) as read from storage"""

    model_config = {"extra": "allow", "populate_by_name": True}

    id: str
    name: str = ""
    active: bool = True
    description: Optional[str] = None
    instance_name: Optional[str] = Field(default=None, alias="instanceName")
    nodes: List[SerializeAsAny[FlowNode]] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("nodes", mode="before")
    @classmethod
    def parse_nodes(cls, value: Any) -> Any:
        if value is None:
            return []
        return [build_node(node) for node in value]

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        """Get a node by ID"""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_start_node(self) -> Optional[FlowNode]:
        """First node typed 'start'"""
        for node in self.nodes:
            if node.type == NodeType.START.value:
                return node
        return None

    def outgoing_edges(self, node_id: str) -> List[FlowEdge]:
        """Edges leaving a node, in declaration order"""
        return [edge for edge in self.edges if edge.source == node_id]


class FlowTriggerRecord(BaseModel):
    """Persisted flow-level trigger"""

    model_config = {"extra": "allow", "populate_by_name": True}

    id: Optional[str] = None
    flow_id: str = Field(alias="flowId")
    type: str = "text"  # text | regex
    value: str


class BotMessages(BaseModel):
    """User-facing texts sent by the conversation engine"""

    not_understood: str = (
        "Olá! Não reconheci sua mensagem. Parece que não há fluxos ativos "
        "configurados no sistema."
    )
    technical_problem: str = (
        "Desculpe, estamos enfrentando problemas técnicos. Por favor, tente "
        "novamente mais tarde."
    )
    flow_not_found: str = "Desculpe, não consegui encontrar o fluxo solicitado."
    flow_without_start: str = (
        "Desculpe, o fluxo parece estar mal configurado (sem nó inicial)."
    )
    node_not_found: str = "Erro: Nó não encontrado no fluxo. A conversa será encerrada."
    incomplete_flow: str = "Fluxo incompleto. Não há nós conectados ao nó inicial."
    conversation_finished: str = "Fim da conversa. Obrigado!"
    unexpected_end: str = (
        "Não foi possível determinar o próximo passo. O fluxo pode ter "
        "terminado inesperadamente."
    )
    empty_message: str = "Mensagem sem conteúdo"
    conditional_prompt: str = "Por favor, responda para prosseguir:"
    list_title: str = "Selecione uma opção"
    list_prompt: str = "Por favor, escolha uma das opções abaixo:"
    list_section_title: str = "Opções disponíveis"
    empty_list: str = "Erro: Lista de opções vazia."
    unsupported_node: str = "Tipo de nó não suportado: {node_type}"
    product_not_configured: str = "Produto não configurado corretamente."
    product_unavailable: str = "Não foi possível obter informações do produto solicitado."
    cart_prompt: str = "Para adicionar este produto ao carrinho, responda com 'adicionar'."
    out_of_context: str = (
        "Parece que sua resposta está fora do contexto esperado. Deseja "
        "encerrar esta conversa? (Responda com \"sim\" ou \"não\")"
    )
    conversation_closed: str = (
        "Conversa encerrada. Obrigado por utilizar nosso serviço! Para "
        "iniciar novamente, envie uma mensagem de ativação."
    )
    resume_conversation: str = "Ok, vamos continuar de onde paramos."
    session_expired: str = (
        "Sua sessão expirou por inatividade. Para iniciar novamente, envie "
        "uma mensagem de ativação."
    )


# ============ UTILITY FUNCTIONS ============

def create_sample_flow(flow_id: str = "atendimento") -> Flow:
    """Create the stock customer-service flow used for demos"""
    return Flow(
        id=flow_id,
        name="Atendimento Automatizado",
        description="Menu inicial com opções de atendimento",
        nodes=[
            {
                "id": "start",
                "type": "start",
                "data": {"label": DEFAULT_START_LABEL}
            },
            {
                "id": "welcome",
                "type": "message",
                "data": {"label": "Olá! Bem-vindo ao nosso atendimento."}
            },
            {
                "id": "menu",
                "type": "list",
                "data": {
                    "label": "Como podemos ajudar?",
                    "options": [
                        {"id": "produtos", "text": "Produtos", "description": "Conheça nosso catálogo"},
                        {"id": "suporte", "text": "Suporte", "description": "Fale com o suporte"}
                    ]
                }
            },
            {
                "id": "products_info",
                "type": "message",
                "data": {"label": "Nosso catálogo completo está no site."}
            },
            {
                "id": "support_info",
                "type": "message",
                "data": {"label": "Um atendente vai falar com você em breve."}
            },
            {
                "id": "end",
                "type": "end",
                "data": {"label": "Obrigado pelo contato!"}
            }
        ],
        edges=[
            {"id": "e1", "source": "start", "target": "welcome"},
            {"id": "e2", "source": "welcome", "target": "menu"},
            {"id": "e3", "source": "menu", "target": "products_info", "sourceHandle": "produtos"},
            {"id": "e4", "source": "menu", "target": "support_info", "sourceHandle": "suporte"},
            {"id": "e5", "source": "products_info", "target": "end"},
            {"id": "e6", "source": "support_info", "target": "end"}
        ]
    )
