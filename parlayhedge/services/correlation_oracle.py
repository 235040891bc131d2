"""Correlation oracle backed by Claude."""

import anthropic
from pydantic import ValidationError

from parlayhedge.config import Settings
from parlayhedge.errors import OracleUnavailable
from parlayhedge.logger import get_logger
from parlayhedge.models.quote import OracleJudgment

logger = get_logger(__name__)


CORRELATION_TOOL = {
    "name": "judge_correlation",
    "description": "Assess how correlated the legs of a parlay are and recommend a payout",
    "input_schema": {
        "type": "object",
        "properties": {
            "correlation_analysis": {
                "type": "string",
                "description": "Brief analysis of how these events relate to each other",
            },
            "correlation_factor": {
                "type": "number",
                "description": "1.0 = independent, >1.0 = positively correlated. Never below 1.0",
            },
            "adjusted_probability": {
                "type": "number",
                "description": "Correlation-adjusted combined probability as a fraction (0-1), never below the naive probability",
            },
            "recommended_payout_percentage": {
                "type": "number",
                "description": "Percent of the naive payout to offer, typically 85-95",
            },
            "reasoning": {
                "type": "string",
                "description": "Why this adjusted probability and payout",
            },
            "risk_assessment": {
                "type": "string",
                "enum": ["low", "medium", "high"],
            },
            "confidence_level": {
                "type": "string",
                "description": "Confidence in this analysis",
            },
        },
        "required": [
            "correlation_analysis",
            "correlation_factor",
            "adjusted_probability",
            "recommended_payout_percentage",
            "reasoning",
            "risk_assessment",
            "confidence_level",
        ],
    },
}


SYSTEM_PROMPT = """You are an expert probability analyst specializing in correlation
between prediction market outcomes. You price parlays for a house that must never
offer better odds than the independence assumption.

Consider:
- Whether legs come from the same event or series (tickers sharing a prefix such as
  "KXPRESPERSON-28-" belong to the same election event)
- Same sport or league, timing, causal links and mutually reinforcing outcomes

Rules:
- correlation_factor is 1.0 for independent events and above 1.0 for positively
  correlated events. Never below 1.0.
- adjusted_probability must be at least the naive probability.
- recommended_payout_percentage is the share of the naive payout to offer,
  typically 85-95. Lower it as correlation or uncertainty grows.

Example: naive probability 10% (naive payout $100)
- Independent: adjusted_probability 0.10, correlation_factor 1.0, payout 90%
- Positively correlated: adjusted_probability 0.12, correlation_factor 1.2, payout 85%"""


class CorrelationOracle:
    """Asks Claude for a correlation judgment on a set of parlay legs."""

    def __init__(self, settings: Settings, client: anthropic.Anthropic | None = None):
        if client is None:
            if not settings.anthropic_api_key:
                raise ValueError(
                    "ANTHROPIC_API_KEY not configured. "
                    "Add it to your .env file to price parlays."
                )
            # Retries are the caller's decision
            client = anthropic.Anthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.oracle_timeout_seconds,
                max_retries=0,
            )
        self.client = client
        self.model = settings.model
        self.max_tokens = settings.max_tokens
        logger.info(f"CorrelationOracle initialized with model: {self.model}")

    def judge(
        self,
        leg_descriptions: str,
        stake: float,
        naive_probability: float,
        naive_payout: float,
    ) -> OracleJudgment:
        """Return the oracle's raw (unclamped) judgment.

        Raises:
            OracleUnavailable: the API call failed or timed out, or the
                response did not contain a usable judgment
        """
        logger.info("Requesting correlation judgment")
        logger.debug(f"Legs:\n{leg_descriptions}")

        prompt = (
            f"PARLAY DETAILS:\n{leg_descriptions}\n\n"
            f"Stake Amount: ${stake:.2f}\n"
            f"Naive Combined Probability (assuming independence): {naive_probability * 100:.2f}%\n"
            f"Naive Payout: ${naive_payout:.2f}\n\n"
            "Analyze this parlay for correlation and recommend a payout percentage."
        )

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                tools=[CORRELATION_TOOL],
                tool_choice={"type": "tool", "name": "judge_correlation"},
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            logger.error(f"Correlation oracle timed out: {e}")
            raise OracleUnavailable("Correlation oracle timed out") from e
        except anthropic.APIError as e:
            logger.error(f"Correlation oracle request failed: {e}")
            raise OracleUnavailable(f"Correlation oracle request failed: {e}") from e

        logger.debug(f"Claude response received, usage: {response.usage}")

        for block in response.content:
            if block.type == "tool_use" and block.name == "judge_correlation":
                try:
                    judgment = OracleJudgment(**block.input)
                except (ValidationError, TypeError) as e:
                    logger.error(f"Malformed correlation judgment: {e}")
                    raise OracleUnavailable("Correlation oracle returned a malformed judgment") from e

                logger.info(
                    f"Judgment: factor={judgment.correlation_factor}, "
                    f"adjusted_probability={judgment.adjusted_probability}, "
                    f"payout={judgment.recommended_payout_percentage}%"
                )
                return judgment

        logger.error("No correlation judgment tool use found in response")
        raise OracleUnavailable("Correlation oracle returned no judgment")
