"""Learning-rate and weight-bound parameters for the feedback loop."""

from pydantic import BaseModel, Field, model_validator


class LearningParams(BaseModel):
    """Step size and clamp bounds for outcome-driven weight updates."""

    base_increment: float = Field(default=1.0, gt=0)
    min_weight: float = Field(default=0.01, ge=0)
    max_weight: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "LearningParams":
        if self.min_weight > self.max_weight:
            raise ValueError(
                f"min_weight ({self.min_weight}) must not exceed max_weight ({self.max_weight})"
            )
        return self


DEFAULT_LEARNING_PARAMS = LearningParams()
