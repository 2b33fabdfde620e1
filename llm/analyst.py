"""
Analyst: LLM-based narrative analysis of the trading journal.

Builds a prompt from the trade statistics and the most recent trades,
sends it to the Gemini generateContent endpoint and returns the model's
text unchanged.

No retry and no streaming: one request, one answer or one error.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import requests

from core.formatting import format_amount, format_profit_factor
from core.statistics import TradeStatistics, calculate_trade_statistics
from core.trade import Trade, calculate_trade_pnl
from core.utils import iso_timestamp

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
RECENT_TRADES_IN_PROMPT = 10
NO_ANALYSIS_TEXT = "ไม่สามารถสร้างการวิเคราะห์ได้"
CONNECTION_TEST_PROMPT = 'สวัสดี กรุณาตอบว่า "การเชื่อมต่อสำเร็จ" เป็นภาษาไทย'


class AnalysisType(str, Enum):
    """Category of analysis requested from the model."""
    PERFORMANCE = "performance"
    RISK = "risk"
    IMPROVEMENT = "improvement"
    STRATEGY = "strategy"

    @classmethod
    def parse(cls, value) -> "AnalysisType":
        """Unknown categories fall back to performance."""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown analysis type {value!r}, using performance")
            return cls.PERFORMANCE


class AnalysisError(RuntimeError):
    """Base class for analysis service failures."""


class MissingApiKeyError(AnalysisError):
    """Raised when no API key is configured."""


class AnalysisServiceError(AnalysisError):
    """Raised on network failures or non-2xx responses."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GenerationConfig:
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 2048

    @classmethod
    def from_dict(cls, config: Optional[dict]) -> "GenerationConfig":
        config = config or {}
        return cls(
            temperature=config.get("temperature", 0.7),
            top_k=config.get("top_k", 40),
            top_p=config.get("top_p", 0.95),
            max_output_tokens=config.get("max_output_tokens", 2048),
        )

    def to_payload(self) -> dict:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


CONNECTION_TEST_CONFIG = GenerationConfig(temperature=0.1, top_k=1, top_p=0.1, max_output_tokens=50)


@dataclass
class AnalysisResult:
    analysis: str
    stats: TradeStatistics
    analysis_type: AnalysisType
    timestamp: str = field(default_factory=iso_timestamp)


# =============================================================================
# Prompt building
# =============================================================================

INSTRUCTIONS = {
    AnalysisType.PERFORMANCE: """กรุณาวิเคราะห์ประสิทธิภาพการเทรดโดยครอบคลุม:
1. **ประเมินผลงานโดยรวม** - ดีหรือต้องปรับปรุง และเพราะอะไร
2. **จุดแข็งของการเทรด** - สิ่งที่ทำได้ดี
3. **จุดที่ต้องปรับปรุง** - ปัญหาที่พบและวิธีแก้ไข
4. **การจัดการความเสี่ยง** - ประเมิน Risk Management
5. **แนวโน้มการเทรด** - pattern ที่สังเกตได้

ตอบเป็นภาษาไทยในรูปแบบ Markdown ที่อ่านง่าย""",

    AnalysisType.RISK: """กรุณาวิเคราะห์ความเสี่ยงในการเทรดโดยครอบคลุม:
1. **ระดับความเสี่ยงปัจจุบัน** - สูง กลาง หรือต่ำ
2. **การกระจายความเสี่ยง** - วิเคราะห์ position sizing
3. **Max Drawdown Analysis** - ผลกระทบและการป้องกัน
4. **Consecutive Losses** - ความเสี่ยงจากการแพ้ติดต่อกัน
5. **คำแนะนำการจัดการความเสี่ยง** - วิธีลดความเสี่ยง

ตอบเป็นภาษาไทยในรูปแบบ Markdown""",

    AnalysisType.IMPROVEMENT: """กรุณาให้คำแนะนำในการปรับปรุงการเทรดโดยครอบคลุม:
1. **จุดที่ต้องปรับปรุงเร่งด่วน** - ปัญหาสำคัญที่สุด
2. **กลยุทธ์การปรับปรุง** - วิธีการเฉพาะ
3. **การตั้งเป้าหมาย** - เป้าหมายระยะสั้นและยาว
4. **การพัฒนาทักษะ** - ทักษะที่ควรฝึกฝน
5. **แผนการดำเนินการ** - ขั้นตอนการปรับปรุง

ตอบเป็นภาษาไทยในรูปแบบ Markdown""",

    AnalysisType.STRATEGY: """กรุณาวิเคราะห์กลยุทธ์การเทรดโดยครอบคลุม:
1. **รูปแบบการเทรดปัจจุบัน** - วิเคราะห์ strategy ที่ใช้
2. **ประสิทธิภาพของกลยุทธ์** - ผลตอบแทนและความเสี่ยง
3. **การปรับปรุงกลยุทธ์** - ข้อเสนอแนะการพัฒนา
4. **กลยุทธ์ทางเลือก** - แนะนำ strategy ใหม่
5. **การเลือกจังหวะ** - timing ในการเข้าและออก

ตอบเป็นภาษาไทยในรูปแบบ Markdown""",
}


def format_trade_line(index: int, trade: Trade) -> str:
    """One prompt line per trade, e.g. '1. 2024-01-15: BUY - เข้า $2000.00 ออก $2010.00 ขนาด 0.1 = +$100.00 USD'."""
    pnl = calculate_trade_pnl(trade)
    sign = "+" if pnl >= 0 else "-"
    note = f" ({trade.note})" if trade.note else ""
    return (
        f"{index}. {trade.date}: {trade.trade_type.value.upper()} - "
        f"เข้า ${trade.entry_price:.2f} ออก ${trade.exit_price:.2f} ขนาด {trade.lot_size:g} "
        f"= {sign}${abs(pnl):.2f} USD{note}"
    )


def build_analysis_prompt(
    trades: list[Trade],
    capital: float,
    analysis_type: AnalysisType = AnalysisType.PERFORMANCE,
    stats: Optional[TradeStatistics] = None,
) -> str:
    """
    Assemble the analysis prompt.

    Args:
        trades: Trades, oldest first; the last RECENT_TRADES_IN_PROMPT are listed
        capital: Starting capital in USD
        analysis_type: Which instruction template to append
        stats: Precomputed statistics (computed from `trades` if omitted)

    Returns:
        Prompt text
    """
    analysis_type = AnalysisType.parse(analysis_type)
    if stats is None:
        stats = calculate_trade_statistics(trades)

    recent = trades[-RECENT_TRADES_IN_PROMPT:]
    recent_lines = "\n".join(format_trade_line(i + 1, t) for i, t in enumerate(recent))

    base = f"""คุณเป็น AI Trading Analyst ผู้เชี่ยวชาญด้านการวิเคราะห์การเทรดทองคำ

ข้อมูลการเทรด:
- เงินทุนเริ่มต้น: ${format_amount(capital)} USD
- จำนวนการเทรดทั้งหมด: {stats.total_trades}
- อัตราชนะ: {stats.win_rate:.1f}%
- กำไรขาดทุนรวม: ${format_amount(stats.total_pnl)} USD
- Profit Factor: {format_profit_factor(stats.profit_factor)}
- กำไรเฉลี่ย: ${format_amount(stats.average_win)} USD
- ขาดทุนเฉลี่ย: ${format_amount(stats.average_loss)} USD
- Max Drawdown: ${format_amount(stats.max_drawdown)} USD
- ชนะติดต่อกันสูงสุด: {stats.max_win_streak} ครั้ง
- แพ้ติดต่อกันสูงสุด: {stats.max_loss_streak} ครั้ง

การเทรด {len(recent)} รายการล่าสุด:
{recent_lines}
"""
    return f"{base}\n{INSTRUCTIONS[analysis_type]}"


# =============================================================================
# Gemini client
# =============================================================================


class GeminiClient:
    """
    Minimal client for the Gemini generateContent REST endpoint.
    """

    def __init__(
        self,
        api_key: Optional[str],
        url: str = GEMINI_API_URL,
        generation_config: Optional[GenerationConfig] = None,
        timeout: Optional[float] = 60.0,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key (sent as the X-goog-api-key header)
            url: generateContent endpoint URL
            generation_config: Sampling settings forwarded with each request
            timeout: Request timeout in seconds
        """
        self.api_key = (api_key or "").strip()
        self.url = url
        self.generation_config = generation_config or GenerationConfig()
        self.timeout = timeout

    def _post(self, prompt: str, config: GenerationConfig) -> requests.Response:
        if not self.api_key:
            raise MissingApiKeyError("Gemini API key is not configured")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": config.to_payload(),
        }
        headers = {
            "Content-Type": "application/json",
            "X-goog-api-key": self.api_key,
        }
        try:
            return requests.post(self.url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise AnalysisServiceError(f"Could not reach the analysis service: {e}") from e

    def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the generated text verbatim.

        Raises:
            MissingApiKeyError: if no API key is set
            AnalysisServiceError: on network errors, non-2xx status or a non-JSON body
        """
        response = self._post(prompt, self.generation_config)
        if not response.ok:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:500]}")
            raise AnalysisServiceError(
                f"Analysis service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisServiceError(f"Analysis service returned invalid JSON: {e}") from e

        return extract_text(data) or NO_ANALYSIS_TEXT

    def test_connection(self) -> tuple[bool, str]:
        """
        Check that the API key works with a tiny request.

        Returns:
            Tuple of (ok, message)
        """
        if not self.api_key:
            return False, "กรุณาใส่ API Key"

        try:
            response = self._post(CONNECTION_TEST_PROMPT, CONNECTION_TEST_CONFIG)
        except AnalysisServiceError as e:
            return False, str(e)

        if response.ok:
            try:
                reply = extract_text(response.json())
            except ValueError:
                reply = None
            return True, reply or "การเชื่อมต่อสำเร็จ"

        logger.warning(f"Gemini connection test failed with HTTP {response.status_code}")
        messages = {
            400: "API Key ไม่ถูกต้องหรือไม่มีสิทธิ์เข้าถึง",
            403: "API Key ไม่มีสิทธิ์ใช้งาน Gemini API",
            429: "เกินจำนวนการเรียกใช้ API ที่อนุญาต",
        }
        return False, messages.get(response.status_code, f"การเชื่อมต่อล้มเหลว ({response.status_code})")


def client_from_config(api_key: Optional[str], config: dict) -> GeminiClient:
    """Build a GeminiClient from the `llm` section of the journal config."""
    llm_config = config.get("llm") or {}
    return GeminiClient(
        api_key,
        url=llm_config.get("model_url", GEMINI_API_URL),
        generation_config=GenerationConfig.from_dict(llm_config.get("generation_config")),
        timeout=llm_config.get("timeout_seconds", 60),
    )


def extract_text(data: dict) -> Optional[str]:
    """Read candidates[0].content.parts[0].text, or None if absent."""
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class TradeAnalyst:
    """
    Runs an analysis request for a trade journal.
    """

    def __init__(self, client: GeminiClient):
        self.client = client

    def analyze(
        self,
        trades: list[Trade],
        capital: float,
        analysis_type: AnalysisType = AnalysisType.PERFORMANCE,
    ) -> AnalysisResult:
        """
        Analyze trades with the model.

        Args:
            trades: Trades ordered oldest first
            capital: Starting capital
            analysis_type: Analysis category

        Returns:
            AnalysisResult with the model's text and the statistics sent

        Raises:
            ValueError: if there are no trades
            AnalysisError: if the service call fails
        """
        if not trades:
            raise ValueError("No trades to analyze")

        analysis_type = AnalysisType.parse(analysis_type)
        stats = calculate_trade_statistics(trades)
        prompt = build_analysis_prompt(trades, capital, analysis_type, stats)

        logger.info(f"Requesting {analysis_type.value} analysis for {len(trades)} trades")
        text = self.client.generate(prompt)
        return AnalysisResult(analysis=text, stats=stats, analysis_type=analysis_type)
