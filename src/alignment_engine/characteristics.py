"""Characteristic extraction - first stage of the Recommendation Engine.

Scans requirement text for keyword families and summarizes the
architecture-relevant signals of a requirement set.
"""

import re
from typing import Optional

from requirements_graph.schema import Requirement, RequirementType

from .config import EngineConfig, RecommendationConfig, get_config
from .schema import ArchitecturalCharacteristics, Level, ProjectContext


def mentions(text: str, keywords: list[str]) -> bool:
    """Whether any keyword occurs in ``text`` (already lowercased)."""
    return any(keyword.lower() in text for keyword in keywords)


def has_high_scalability_signal(requirements: list[Requirement], settings: RecommendationConfig) -> bool:
    return any(mentions(r.text, settings.high_scalability_keywords) for r in requirements)


class CharacteristicsExtractor:
    """Derives ArchitecturalCharacteristics from requirements.

    Extraction rules:
    - Scalability keywords anywhere raise scalability needs to HIGH
    - Requirements mentioning performance or security are listed by id
    - Compliance-typed requirements are listed by id
    - Integration and consistency wording raise the matching signals
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.settings = (config or get_config()).recommendation

    def extract(
        self,
        requirements: list[Requirement],
        context: Optional[ProjectContext] = None,
    ) -> ArchitecturalCharacteristics:
        settings = self.settings
        team_expertise = settings.default_team_expertise_level
        if context is not None and context.team_expertise is not None:
            team_expertise = context.team_expertise

        characteristics = ArchitecturalCharacteristics(
            scalability_needs=Level.MEDIUM,
            integration_complexity=Level.MEDIUM,
            data_consistency_needs="EVENTUAL",
            team_expertise=team_expertise,
        )

        integration_mentions = 0
        for requirement in requirements:
            text = requirement.text
            if mentions(text, settings.scalability_keywords):
                characteristics.scalability_needs = Level.HIGH
            if mentions(text, settings.performance_keywords):
                characteristics.performance_requirements.append(requirement.id)
            if mentions(text, settings.security_keywords):
                characteristics.security_requirements.append(requirement.id)
            if requirement.type == RequirementType.COMPLIANCE:
                characteristics.compliance_requirements.append(requirement.id)
            if mentions(text, settings.consistency_keywords):
                characteristics.data_consistency_needs = "STRONG"
            if any(re.search(rf"\b{re.escape(k)}", text) for k in settings.integration_keywords):
                integration_mentions += 1

        if integration_mentions > 1:
            characteristics.integration_complexity = Level.HIGH
        elif integration_mentions == 0 and requirements:
            characteristics.integration_complexity = Level.LOW

        return characteristics

    def active_signals(self, characteristics: ArchitecturalCharacteristics) -> list[str]:
        """Names of the characteristic signals that earn pattern bonuses."""
        signals = []
        if characteristics.scalability_needs == Level.HIGH:
            signals.append("high_scalability")
        if characteristics.security_requirements:
            signals.append("security")
        if characteristics.compliance_requirements:
            signals.append("compliance")
        if characteristics.data_consistency_needs == "STRONG":
            signals.append("strong_consistency")
        if characteristics.integration_complexity == Level.HIGH:
            signals.append("high_integration")
        return signals
