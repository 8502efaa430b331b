"""Starter patterns and technology stacks.

Created by a migration run when the graph has no candidates yet. Every
generated component is flagged ``auto_generated`` and tagged with the
project it was generated for so a rollback can remove it again.
"""

from requirements_graph.schema import (
    ArchitecturePattern,
    LearningCurve,
    PatternType,
    PerformanceMetrics,
    QualityAttribute,
    QualityImpact,
    Technology,
    TechnologyLayer,
    TechnologyMaturity,
    TechnologyStack,
)


def default_patterns(project_id: str) -> list[ArchitecturePattern]:
    """Layered, microservices and event-driven starter patterns."""
    return [
        ArchitecturePattern(
            id=f"pattern_layered_{project_id}",
            name="Layered Architecture",
            type=PatternType.LAYERED,
            description="Presentation, business and data layers with strict downward dependencies",
            applicability_conditions=["crud", "workflow", "report", "form"],
            quality_attributes=[
                QualityAttribute(name="maintainability", impact=QualityImpact.POSITIVE,
                                 description="Clear separation of concerns"),
                QualityAttribute(name="scalability", impact=QualityImpact.NEGATIVE,
                                 description="Layers scale together"),
            ],
            auto_generated=True,
            generated_for_project=project_id,
        ),
        ArchitecturePattern(
            id=f"pattern_microservices_{project_id}",
            name="Microservices",
            type=PatternType.MICROSERVICES,
            description="Independently deployable services organized around business capabilities",
            applicability_conditions=["scale", "independent", "team", "deploy"],
            quality_attributes=[
                QualityAttribute(name="scalability", impact=QualityImpact.POSITIVE,
                                 description="Services scale independently"),
                QualityAttribute(name="availability", impact=QualityImpact.POSITIVE,
                                 description="Failures are isolated per service"),
                QualityAttribute(name="consistency", impact=QualityImpact.NEGATIVE,
                                 description="Data is distributed across services"),
            ],
            auto_generated=True,
            generated_for_project=project_id,
        ),
        ArchitecturePattern(
            id=f"pattern_event_driven_{project_id}",
            name="Event-Driven Architecture",
            type=PatternType.EVENT_DRIVEN,
            description="Components communicate through asynchronous events",
            applicability_conditions=["event", "notification", "real-time", "integration"],
            quality_attributes=[
                QualityAttribute(name="throughput", impact=QualityImpact.POSITIVE,
                                 description="Asynchronous processing absorbs load peaks"),
                QualityAttribute(name="testability", impact=QualityImpact.NEGATIVE,
                                 description="Event flows are harder to trace"),
            ],
            auto_generated=True,
            generated_for_project=project_id,
        ),
    ]


def default_technology_stacks(project_id: str) -> list[TechnologyStack]:
    """A conventional web stack and a cloud-native stack."""
    return [
        TechnologyStack(
            id=f"stack_web_{project_id}",
            name="Conventional Web Stack",
            description="Server-rendered web application on a relational database",
            layers=[
                TechnologyLayer(name="backend", technologies=[
                    Technology(name="Django", purpose="Web framework",
                               maturity=TechnologyMaturity.MATURE, learning_curve=LearningCurve.LOW),
                ]),
                TechnologyLayer(name="data", technologies=[
                    Technology(name="PostgreSQL", purpose="Relational database",
                               maturity=TechnologyMaturity.MATURE, learning_curve=LearningCurve.LOW),
                ]),
            ],
            performance_metrics=PerformanceMetrics(scalability=0.5, reliability=0.8, maintainability=0.8),
            auto_generated=True,
            generated_for_project=project_id,
        ),
        TechnologyStack(
            id=f"stack_cloud_native_{project_id}",
            name="Cloud-Native Stack",
            description="Containerized services with an event backbone",
            layers=[
                TechnologyLayer(name="platform", technologies=[
                    Technology(name="Kubernetes", purpose="Container orchestration",
                               maturity=TechnologyMaturity.MATURE, learning_curve=LearningCurve.HIGH),
                    Technology(name="Docker", purpose="Containers",
                               maturity=TechnologyMaturity.MATURE, learning_curve=LearningCurve.MEDIUM),
                ]),
                TechnologyLayer(name="messaging", technologies=[
                    Technology(name="Kafka", purpose="Event streaming",
                               maturity=TechnologyMaturity.MATURE, learning_curve=LearningCurve.HIGH),
                ]),
            ],
            performance_metrics=PerformanceMetrics(scalability=0.9, reliability=0.8, maintainability=0.6),
            auto_generated=True,
            generated_for_project=project_id,
        ),
    ]
