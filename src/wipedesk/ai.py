"""Optional generative-AI helpers (Google Gemini).

Both features degrade gracefully: without an API key, or when the service
fails, callers get an advisory result with available=False instead of an
exception, so order, catalog and customer workflows keep working.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from .models import Dimensions, Order, ProductSpec
from .orders import analysis_summary

logger = logging.getLogger(__name__)

DEFAULT_MODEL = os.environ.get("WIPEDESK_AI_MODEL", "gemini-2.5-flash")

MSG_MISSING_KEY = "API Anahtarı eksik."
MSG_SUGGESTION_FAILED = "AI önerisi alınamadı."
MSG_ANALYSIS_EMPTY = "Analiz yapılamadı."
MSG_ANALYSIS_FAILED = "Bağlantı hatası nedeniyle analiz yapılamadı."

SPEC_SYSTEM_INSTRUCTION = (
    "Sen uzman bir ambalaj ve kozmetik üretim danışmanısın. JSON formatında yanıt ver."
)

SPEC_PROMPT = """\
Bir ıslak mendil üreticisi için satış temsilcisi asistanısın.
Müşteri şu türde bir mendil istiyor: "{description}".
Buna uygun teknik özellikleri (ambalaj malzemesi, ölçüler, havlu gramajı vb.) tahmin et ve öner.
Sektör standartlarına uygun mantıklı varsayımlar yap.
"""

ANALYSIS_PROMPT = """\
Aşağıdaki sipariş detaylarını incele.
1. Eksik veya riskli görünen bir teknik detay veya fiyatlandırma var mı?
2. Sipariş notuna eklenmesi gereken profesyonel bir hatırlatma yaz.

Sipariş Özeti:
{order_json}
"""


def get_api_key() -> str | None:
    """API key from GEMINI_API_KEY, falling back to API_KEY."""
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None


class SpecSuggestionResponse(BaseModel):
    """Structured reply requested from the model."""

    outer_material: Optional[str] = Field(None, description="Örn: Triplex, PET/ALU/PE")
    outer_width: Optional[float] = Field(None, description="Genişlik cm")
    outer_height: Optional[float] = Field(None, description="Yükseklik cm")
    towel_gsm: Optional[float] = Field(None, description="Havlu gramajı")
    essence_name: Optional[str] = Field(None, description="Koku tipi")
    suggestion_reason: Optional[str] = Field(
        None, description="Neden bu özellikler önerildi?"
    )


@dataclass(frozen=True)
class SpecSuggestion:
    specs: ProductSpec
    reason: str
    available: bool = True


@dataclass(frozen=True)
class AnalysisResult:
    text: str
    available: bool = True


def merge_suggestion(current: ProductSpec, suggestion: SpecSuggestionResponse) -> ProductSpec:
    """Overlay the suggested fields on current; absent fields keep their value."""
    changes: dict[str, Any] = {}
    if suggestion.outer_material:
        changes["outer_material"] = suggestion.outer_material
    if suggestion.outer_width is not None or suggestion.outer_height is not None:
        changes["outer_dimensions"] = Dimensions(
            width=suggestion.outer_width
            if suggestion.outer_width is not None
            else current.outer_dimensions.width,
            height=suggestion.outer_height
            if suggestion.outer_height is not None
            else current.outer_dimensions.height,
        )
    if suggestion.towel_gsm is not None:
        changes["towel_gsm"] = suggestion.towel_gsm
    if suggestion.essence_name:
        changes["essence_name"] = suggestion.essence_name
    return replace(current, **changes)


class AIClient:
    """
    Thin wrapper over the Gemini text-completion API.

    Calls are synchronous with no retry and no de-duplication; concurrent
    callers simply race.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        client: Any = None,
    ):
        """
        Initialize AIClient.

        Args:
            api_key: Gemini API key (defaults to the environment).
            model: Model name.
            client: Pre-built genai client (for testing).
        """
        self.api_key = api_key if api_key is not None else get_api_key()
        self.model = model
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self) -> Any:
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def suggest_specs(self, description: str, current: ProductSpec | None = None) -> SpecSuggestion:
        """Suggest technical specs for a free-text product description."""
        current = current or ProductSpec.default()
        if not self.enabled:
            return SpecSuggestion(specs=current, reason=MSG_MISSING_KEY, available=False)

        try:
            from google.genai import types

            response = self._get_client().models.generate_content(
                model=self.model,
                contents=SPEC_PROMPT.format(description=description),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=SpecSuggestionResponse,
                    system_instruction=SPEC_SYSTEM_INSTRUCTION,
                ),
            )
        except Exception as e:
            logger.warning("AI suggestion request failed: %s", e)
            return SpecSuggestion(specs=current, reason=MSG_SUGGESTION_FAILED, available=False)

        if not response.text:
            return SpecSuggestion(specs=current, reason=MSG_SUGGESTION_FAILED, available=False)

        try:
            parsed = SpecSuggestionResponse.model_validate_json(response.text)
        except ValidationError as e:
            logger.warning("AI suggestion returned invalid JSON: %s", e)
            return SpecSuggestion(specs=current, reason=MSG_SUGGESTION_FAILED, available=False)

        return SpecSuggestion(
            specs=merge_suggestion(current, parsed),
            reason=parsed.suggestion_reason or "",
        )

    def analyze_order(self, order: Order) -> AnalysisResult:
        """Free-form profitability and risk commentary for an order."""
        if not self.enabled:
            return AnalysisResult(text=MSG_MISSING_KEY, available=False)

        order_json = json.dumps(analysis_summary(order), indent=2, ensure_ascii=False)
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=ANALYSIS_PROMPT.format(order_json=order_json),
            )
        except Exception as e:
            logger.warning("AI analysis request failed for order %s: %s", order.id, e)
            return AnalysisResult(text=MSG_ANALYSIS_FAILED, available=False)

        if not response.text:
            return AnalysisResult(text=MSG_ANALYSIS_EMPTY, available=False)
        return AnalysisResult(text=response.text)
