"""The measured person: the profile that personalizes an integrated analysis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vitalfuse.domains.biosignal.errors import ValidationError

GENDERS = ("male", "female", "other")


@dataclass(frozen=True)
class Lifestyle:
    sleep_hours: float | None = None
    exercise_frequency: str | None = None
    stress_level: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleep_hours": self.sleep_hours,
            "exercise_frequency": self.exercise_frequency,
            "stress_level": self.stress_level,
        }


@dataclass(frozen=True)
class SubjectProfile:
    age: int
    gender: str
    occupation: str | None = None
    lifestyle: Lifestyle | None = None

    def validate(self) -> None:
        if isinstance(self.age, bool) or not isinstance(self.age, int) or self.age <= 0:
            raise ValidationError(f"must be a positive integer, got {self.age!r}", field="subject.age")
        if self.gender not in GENDERS:
            raise ValidationError(
                f"must be one of {GENDERS}, got {self.gender!r}", field="subject.gender"
            )
        if self.lifestyle and self.lifestyle.sleep_hours is not None:
            sleep_hours = self.lifestyle.sleep_hours
            if isinstance(sleep_hours, bool) or not isinstance(sleep_hours, (int, float)):
                raise ValidationError(
                    f"must be a number, got {sleep_hours!r}", field="subject.lifestyle.sleep_hours"
                )
            if not 0 <= sleep_hours <= 24:
                raise ValidationError(
                    "must be within [0, 24]", field="subject.lifestyle.sleep_hours"
                )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"age": self.age, "gender": self.gender}
        if self.occupation:
            data["occupation"] = self.occupation
        if self.lifestyle is not None:
            data["lifestyle"] = self.lifestyle.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubjectProfile:
        """Build a profile from a tool payload. Range checks are left to :meth:`validate`.

        Raises:
            ValidationError: ``lifestyle`` is present but not an object.
        """
        lifestyle = data.get("lifestyle")
        if lifestyle and not isinstance(lifestyle, dict):
            raise ValidationError(
                f"must be an object, got {type(lifestyle).__name__}", field="subject.lifestyle"
            )
        return cls(
            age=data.get("age"),
            gender=data.get("gender", ""),
            occupation=data.get("occupation") or None,
            lifestyle=Lifestyle(
                sleep_hours=lifestyle.get("sleep_hours"),
                exercise_frequency=lifestyle.get("exercise_frequency"),
                stress_level=lifestyle.get("stress_level"),
            ) if lifestyle else None,
        )
