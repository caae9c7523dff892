"""
SDK API routes.

Serves environment payloads to SDKs that evaluate locally and evaluates
flags server-side for thin clients.
"""

from typing import Annotated, Any

from fastapi import APIRouter
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from featuregate.core.evaluator import EvaluationResult
from featuregate.core.evaluator.dependencies import Evaluation

router = APIRouter()


# ============================================================
# SCHEMAS
# ============================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate_context(context: dict[str, Any]) -> dict[str, Any]:
    key = context.get("key")
    if not isinstance(key, str) or not key:
        raise ValueError("context.key must be a non-empty string")
    return context


SdkContext = Annotated[dict[str, Any], AfterValidator(_validate_context)]


class EvaluateRequest(CamelModel):
    """Evaluate one flag."""
    flag_key: str = Field(..., min_length=1)
    context: SdkContext


class BatchEvaluateRequest(CamelModel):
    """Evaluate several flags (all flags when flagKeys is omitted)."""
    context: SdkContext
    flag_keys: list[str] | None = None


class EvaluationResponse(CamelModel):
    """Outcome of one evaluation."""
    value: Any
    variation_index: int | None
    reason: dict[str, Any]

    @classmethod
    def from_result(cls, result: EvaluationResult) -> "EvaluationResponse":
        return cls(
            value=result.value,
            variation_index=result.variation_index,
            reason=result.reason_dict(),
        )


class FlagEvaluationResponse(EvaluationResponse):
    flag_key: str


class BatchEvaluationResponse(CamelModel):
    results: dict[str, EvaluationResponse]


# ============================================================
# PAYLOAD ENDPOINTS
# ============================================================

@router.get("/flags")
async def get_flags(
    environment: str,
    evaluation: Evaluation,
) -> dict[str, Any]:
    """
    Get every flag and segment of the environment.

    Returns {"flags": {...}, "segments": {...}} for local evaluation.
    """
    return await evaluation.get_payload(environment)


@router.get("/flags/{flag_key}")
async def get_flag(
    environment: str,
    flag_key: str,
    evaluation: Evaluation,
) -> dict[str, Any]:
    """Get one flag in payload shape. 404 when the flag does not exist."""
    return await evaluation.get_flag(environment, flag_key)


# ============================================================
# EVALUATION ENDPOINTS
# ============================================================

@router.post("/evaluate", response_model=FlagEvaluationResponse)
async def evaluate_flag(
    environment: str,
    data: EvaluateRequest,
    evaluation: Evaluation,
) -> FlagEvaluationResponse:
    """Evaluate a single flag for the given context."""
    result = await evaluation.evaluate(environment, data.flag_key, data.context)
    return FlagEvaluationResponse(
        flag_key=data.flag_key,
        value=result.value,
        variation_index=result.variation_index,
        reason=result.reason_dict(),
    )


@router.post("/evaluate/batch", response_model=BatchEvaluationResponse)
async def evaluate_batch(
    environment: str,
    data: BatchEvaluateRequest,
    evaluation: Evaluation,
) -> BatchEvaluationResponse:
    """
    Evaluate several flags under one context.

    Unknown keys in flagKeys are left out of the results.
    """
    results = await evaluation.evaluate_all(environment, data.context, data.flag_keys)
    return BatchEvaluationResponse(
        results={key: EvaluationResponse.from_result(r) for key, r in results.items()},
    )
