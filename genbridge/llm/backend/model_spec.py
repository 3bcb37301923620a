"""Provider capability table.

Static, read-only registry of every model the plugin can talk to: which
wire protocol it speaks, where its API lives, whether it must be reached
through a forwarding relay, and its default pricing.
"""

from dataclasses import dataclass
from enum import Enum

from ...errors import invalid_config
from ...settings import Pricing


class WireFamily(Enum):
    """Request/response shapes spoken by provider adapters."""

    OPENAI = "openai"
    ANTHROPIC = "claude"
    GEMINI = "gemini"
    COHERE = "cohere"
    MISTRAL = "mistral"
    GROQ = "groq"
    LMSTUDIO = "lmstudio"
    YANDEX = "yandex"


@dataclass(frozen=True)
class ProviderCapability:
    """Static description of one model at one provider.

    Attributes:
        id: Stable identifier referenced by provider configs.
        wire_family: Protocol family used to build requests.
        display_name: Human-readable provider label for messages.
        model: Model identifier sent to the API.
        api_base_url: Default API root.
        pricing: Default pricing.
        requires_relay: Whether direct calls are refused and a relay is needed.
        relay_url: Default relay for providers that require one.
        supports_vision: Whether image input is accepted.
        api_key_url: Page where users obtain a key.
        description: Short description.
    """

    id: str
    wire_family: WireFamily
    display_name: str
    model: str
    api_base_url: str
    pricing: Pricing = Pricing()
    requires_relay: bool = False
    relay_url: str | None = None
    supports_vision: bool = False
    api_key_url: str | None = None
    description: str = ""

    @property
    def is_local(self) -> bool:
        """Check if model runs on the user's machine."""
        return self.wire_family == WireFamily.LMSTUDIO

    @property
    def is_free(self) -> bool:
        return self.pricing.input == 0 and self.pricing.output == 0


_OPENAI_URL = "https://api.openai.com/v1"
_OPENAI_KEYS = "https://platform.openai.com/api-keys"
_ANTHROPIC_URL = "https://api.anthropic.com/v1"
_ANTHROPIC_KEYS = "https://console.anthropic.com/settings/keys"
_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta"
_GEMINI_KEYS = "https://aistudio.google.com/app/apikey"
_MISTRAL_URL = "https://api.mistral.ai/v1"
_MISTRAL_KEYS = "https://console.mistral.ai/api-keys"
_GROQ_URL = "https://api.groq.com/openai/v1"
_GROQ_KEYS = "https://console.groq.com/keys"
_COHERE_URL = "https://api.cohere.ai/v1"
_COHERE_KEYS = "https://dashboard.cohere.com/api-keys"
_YANDEX_URL = "https://llm.api.cloud.yandex.net/foundationModels/v1/completion"
_YANDEX_RELAY = "https://proxy.uixray.tech/api/yandex"
_YANDEX_KEYS = "https://console.yandex.cloud"


class ProviderModel(Enum):
    """Registry of supported provider models."""

    # === OpenAI ===
    OPENAI_GPT4O = ProviderCapability(
        id="openai-gpt4o",
        wire_family=WireFamily.OPENAI,
        display_name="OpenAI",
        model="gpt-4o",
        api_base_url=_OPENAI_URL,
        pricing=Pricing(input=2.5, output=10.0),
        supports_vision=True,
        api_key_url=_OPENAI_KEYS,
        description="OpenAI flagship multimodal model",
    )

    OPENAI_GPT4O_MINI = ProviderCapability(
        id="openai-gpt4o-mini",
        wire_family=WireFamily.OPENAI,
        display_name="OpenAI",
        model="gpt-4o-mini",
        api_base_url=_OPENAI_URL,
        pricing=Pricing(input=0.15, output=0.6),
        supports_vision=True,
        api_key_url=_OPENAI_KEYS,
        description="OpenAI fast and affordable small model",
    )

    OPENAI_GPT35 = ProviderCapability(
        id="openai-gpt35",
        wire_family=WireFamily.OPENAI,
        display_name="OpenAI",
        model="gpt-3.5-turbo",
        api_base_url=_OPENAI_URL,
        pricing=Pricing(input=0.5, output=1.5),
        api_key_url=_OPENAI_KEYS,
        description="OpenAI legacy chat model",
    )

    # === Anthropic Claude ===
    CLAUDE_SONNET = ProviderCapability(
        id="claude-sonnet",
        wire_family=WireFamily.ANTHROPIC,
        display_name="Claude",
        model="claude-3-5-sonnet-20241022",
        api_base_url=_ANTHROPIC_URL,
        pricing=Pricing(input=3.0, output=15.0),
        supports_vision=True,
        api_key_url=_ANTHROPIC_KEYS,
        description="Anthropic balanced model",
    )

    CLAUDE_HAIKU = ProviderCapability(
        id="claude-haiku",
        wire_family=WireFamily.ANTHROPIC,
        display_name="Claude",
        model="claude-3-5-haiku-20241022",
        api_base_url=_ANTHROPIC_URL,
        pricing=Pricing(input=0.8, output=4.0),
        api_key_url=_ANTHROPIC_KEYS,
        description="Anthropic fastest model",
    )

    # === Google Gemini ===
    GEMINI_FLASH = ProviderCapability(
        id="gemini-flash",
        wire_family=WireFamily.GEMINI,
        display_name="Gemini",
        model="gemini-1.5-flash",
        api_base_url=_GEMINI_URL,
        pricing=Pricing(input=0.075, output=0.3),
        supports_vision=True,
        api_key_url=_GEMINI_KEYS,
        description="Google fast multimodal model",
    )

    GEMINI_PRO = ProviderCapability(
        id="gemini-pro",
        wire_family=WireFamily.GEMINI,
        display_name="Gemini",
        model="gemini-1.5-pro",
        api_base_url=_GEMINI_URL,
        pricing=Pricing(input=1.25, output=5.0),
        supports_vision=True,
        api_key_url=_GEMINI_KEYS,
        description="Google long-context model",
    )

    # === Mistral ===
    MISTRAL_SMALL = ProviderCapability(
        id="mistral-small",
        wire_family=WireFamily.MISTRAL,
        display_name="Mistral",
        model="mistral-small-latest",
        api_base_url=_MISTRAL_URL,
        pricing=Pricing(input=0.2, output=0.6),
        api_key_url=_MISTRAL_KEYS,
        description="Mistral cost-efficient model",
    )

    MISTRAL_LARGE = ProviderCapability(
        id="mistral-large",
        wire_family=WireFamily.MISTRAL,
        display_name="Mistral",
        model="mistral-large-latest",
        api_base_url=_MISTRAL_URL,
        pricing=Pricing(input=2.0, output=6.0),
        api_key_url=_MISTRAL_KEYS,
        description="Mistral flagship model",
    )

    # === Groq ===
    GROQ_LLAMA = ProviderCapability(
        id="groq-llama",
        wire_family=WireFamily.GROQ,
        display_name="Groq",
        model="llama-3.1-70b-versatile",
        api_base_url=_GROQ_URL,
        pricing=Pricing(input=0.59, output=0.79),
        api_key_url=_GROQ_KEYS,
        description="Llama 3.1 70B on Groq LPU inference",
    )

    GROQ_MIXTRAL = ProviderCapability(
        id="groq-mixtral",
        wire_family=WireFamily.GROQ,
        display_name="Groq",
        model="mixtral-8x7b-32768",
        api_base_url=_GROQ_URL,
        pricing=Pricing(input=0.24, output=0.24),
        api_key_url=_GROQ_KEYS,
        description="Mixtral 8x7B on Groq LPU inference",
    )

    # === Cohere ===
    COHERE_COMMAND_R = ProviderCapability(
        id="cohere-command-r",
        wire_family=WireFamily.COHERE,
        display_name="Cohere",
        model="command-r",
        api_base_url=_COHERE_URL,
        pricing=Pricing(input=0.15, output=0.6),
        api_key_url=_COHERE_KEYS,
        description="Cohere retrieval-tuned model",
    )

    COHERE_COMMAND_R_PLUS = ProviderCapability(
        id="cohere-command-r-plus",
        wire_family=WireFamily.COHERE,
        display_name="Cohere",
        model="command-r-plus",
        api_base_url=_COHERE_URL,
        pricing=Pricing(input=2.5, output=10.0),
        api_key_url=_COHERE_KEYS,
        description="Cohere most capable model",
    )

    # === LM Studio (local) ===
    LMSTUDIO_LOCAL = ProviderCapability(
        id="lmstudio-local",
        wire_family=WireFamily.LMSTUDIO,
        display_name="LM Studio",
        model="local-model",
        api_base_url="http://localhost:1234/v1",
        description="Any model served by a local LM Studio instance",
    )

    # === Yandex Cloud ===
    YANDEX_GPT_LITE = ProviderCapability(
        id="yandex-gpt-lite",
        wire_family=WireFamily.YANDEX,
        display_name="YandexGPT",
        model="yandexgpt-lite/latest",
        api_base_url=_YANDEX_URL,
        pricing=Pricing(input=2.2, output=2.2),
        requires_relay=True,
        relay_url=_YANDEX_RELAY,
        api_key_url=_YANDEX_KEYS,
        description="YandexGPT Lite, reached through a forwarding relay",
    )

    YANDEX_GPT_PRO = ProviderCapability(
        id="yandex-gpt-pro",
        wire_family=WireFamily.YANDEX,
        display_name="YandexGPT",
        model="yandexgpt/latest",
        api_base_url=_YANDEX_URL,
        pricing=Pricing(input=13.2, output=13.2),
        requires_relay=True,
        relay_url=_YANDEX_RELAY,
        api_key_url=_YANDEX_KEYS,
        description="YandexGPT Pro, reached through a forwarding relay",
    )

    @property
    def capability(self) -> ProviderCapability:
        """Get the capability record for this model."""
        return self.value

    @classmethod
    def by_id(cls, capability_id: str) -> "ProviderModel | None":
        """Look up a model by capability id.

        Args:
            capability_id: Identifier to find.

        Returns:
            ProviderModel if found, None otherwise.
        """
        for model in cls:
            if model.capability.id == capability_id:
                return model
        return None

    @classmethod
    def list_by_family(cls, family: WireFamily) -> list["ProviderModel"]:
        """Get all models speaking one wire protocol.

        Args:
            family: Wire family to filter by.

        Returns:
            List of ProviderModel values for that family.
        """
        return [m for m in cls if m.capability.wire_family == family]


def get_capability(
    capability: str | ProviderModel | ProviderCapability,
) -> ProviderCapability:
    """Resolve a capability reference to its record.

    Args:
        capability: Capability id, ProviderModel enum, or the record itself.

    Returns:
        The resolved ProviderCapability.

    Raises:
        PluginError: With kind INVALID_CONFIG if the id is unknown.
    """
    if isinstance(capability, ProviderCapability):
        return capability
    if isinstance(capability, ProviderModel):
        return capability.capability
    found = ProviderModel.by_id(capability)
    if found:
        return found.capability
    raise invalid_config(
        f"Unknown provider capability: {capability}", capability_id=capability
    )


__all__ = [
    "WireFamily",
    "Pricing",
    "ProviderCapability",
    "ProviderModel",
    "get_capability",
]
