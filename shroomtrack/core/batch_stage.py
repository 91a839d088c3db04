# batch_stage.py
"""
Stage derivation for batches on the processing floor.

A PROCESSING batch owns a ProcessConfig (start time plus wash, drain and cook
durations). Its stage, countdown and progress are pure functions of that
config and the current time; nothing here holds countdown state.

    WASH -> DRAIN -> COOK -> COMPLETE
"""
import math
from typing import NamedTuple, Optional
from ..models.api_models import ProcessConfig, Recipe
from ..utils.constants import (
    STAGE_WASH,
    STAGE_DRAIN,
    STAGE_COOK,
    STAGE_COMPLETE,
    STAGE_DISPLAY,
    WASH_SECONDS_PER_BASE_WEIGHT,
    DRAIN_DURATION_SECONDS,
    DEFAULT_BASE_WEIGHT_KG,
    QC_WEIGHT_TOLERANCE_KG,
    WASTAGE_REASONS,
)


class StageState(NamedTuple):
    stage: str
    time_left: int
    progress: float


class QCValidationError(ValueError):
    """Raised when the QC weights or wastage reason do not pass the finish gate."""


def derive_stage(config: ProcessConfig, now: int) -> StageState:
    elapsed = max(0, math.floor(now - config.start_time))
    drain_start = config.wash_duration_seconds
    cook_start = drain_start + config.drain_duration_seconds
    finish_time = cook_start + config.cook_duration_seconds

    if elapsed < drain_start:
        return StageState(STAGE_WASH, drain_start - elapsed,
                          _progress(elapsed, config.wash_duration_seconds))
    if elapsed < cook_start:
        return StageState(STAGE_DRAIN, cook_start - elapsed,
                          _progress(elapsed - drain_start, config.drain_duration_seconds))
    if elapsed < finish_time:
        return StageState(STAGE_COOK, finish_time - elapsed,
                          _progress(elapsed - cook_start, config.cook_duration_seconds))
    return StageState(STAGE_COMPLETE, 0, 100.0)


def _progress(into_span: int, span: int) -> float:
    # span > 0 whenever a stage is entered
    return into_span / span * 100


def stage_display(stage: str, recipe_type: Optional[str]) -> dict:
    if stage == STAGE_COOK:
        return STAGE_DISPLAY["COOK_CHIPS" if recipe_type == "CHIPS" else "COOK_OTHER"]
    return STAGE_DISPLAY[stage]


def format_time(seconds: float) -> str:
    m = int(seconds // 60)
    s = int(seconds % 60)
    return f"{m}:{s:02d}"


def _weight_ratio(net_weight_kg: float, recipe: Recipe) -> float:
    base_weight = recipe.base_weight_kg or DEFAULT_BASE_WEIGHT_KG
    return net_weight_kg / base_weight


def plan_process(net_weight_kg: float, recipe: Recipe, now: int) -> ProcessConfig:
    """Scale wash and cook times by how many recipe base weights the batch holds."""
    ratio = _weight_ratio(net_weight_kg, recipe)
    wash = math.ceil(ratio * WASH_SECONDS_PER_BASE_WEIGHT)
    drain = DRAIN_DURATION_SECONDS
    cook = math.ceil(ratio * recipe.cook_time_minutes * 60)
    return ProcessConfig(
        start_time=now,
        wash_duration_seconds=wash,
        drain_duration_seconds=drain,
        cook_duration_seconds=cook,
        total_duration_seconds=wash + drain + cook,
    )


def switch_recipe(config: ProcessConfig, net_weight_kg: float, recipe: Recipe) -> ProcessConfig:
    """Only the cook stage follows the new recipe; the clock keeps running."""
    cook = math.ceil(_weight_ratio(net_weight_kg, recipe) * recipe.cook_time_minutes * 60)
    return config.model_copy(update={
        "cook_duration_seconds": cook,
        "total_duration_seconds": config.wash_duration_seconds + config.drain_duration_seconds + cook,
    })


def fast_forward(config: ProcessConfig, now: int) -> ProcessConfig:
    return config.model_copy(update={"start_time": now - config.total_duration_seconds - 1})


def check_qc(
    input_weight_kg: float,
    good_kg: Optional[float],
    wastage_kg: Optional[float],
    reason: Optional[str] = None,
    custom_reason: Optional[str] = None,
) -> Optional[str]:
    """
    Validate the finish-batch weights and return the wastage reason to record.

    good + wastage must match the batch input within QC_WEIGHT_TOLERANCE_KG.
    Any wastage needs one of WASTAGE_REASONS; "Other" needs the operator's own text.
    """
    if good_kg is None:
        raise QCValidationError("Good output weight is required")
    wastage_kg = wastage_kg or 0.0
    if good_kg < 0 or wastage_kg < 0:
        raise QCValidationError("Weights cannot be negative")

    total = good_kg + wastage_kg
    if abs(total - input_weight_kg) > QC_WEIGHT_TOLERANCE_KG:
        raise QCValidationError(
            f"Total weight ({total:.2f}kg) must match Input ({input_weight_kg:.2f}kg)"
        )

    if wastage_kg > 0:
        if not reason:
            raise QCValidationError("A wastage reason is required")
        if reason not in WASTAGE_REASONS:
            raise QCValidationError(f"Unknown wastage reason: {reason}")
        if reason == "Other":
            if not custom_reason or not custom_reason.strip():
                raise QCValidationError("Please specify the wastage reason")
            return f"Other: {custom_reason.strip()}"
        return reason
    return reason or None
