from __future__ import annotations

from dataclasses import dataclass

from persona_genai.config import settings


@dataclass(frozen=True)
class Pricing:
    image_operation: float
    prompt_per_1k: float
    completion_per_1k: float

    @classmethod
    def from_settings(cls) -> "Pricing":
        return cls(
            image_operation=settings.image_operation_cost,
            prompt_per_1k=settings.evaluation_prompt_cost_per_1k,
            completion_per_1k=settings.evaluation_completion_cost_per_1k,
        )


@dataclass
class CostAccumulator:
    pricing: Pricing
    total: float = 0.0

    def add(self, amount: float) -> float:
        if amount < 0:
            raise ValueError("cost amounts must be non-negative")
        self.total += amount
        return self.total

    def add_image_operation(self) -> float:
        return self.add(self.pricing.image_operation)

    def add_token_usage(self, prompt_tokens: int, completion_tokens: int) -> float:
        return self.add(
            (prompt_tokens / 1000) * self.pricing.prompt_per_1k
            + (completion_tokens / 1000) * self.pricing.completion_per_1k
        )

    def formatted(self) -> str:
        return f"{self.total:.4f}"
