# project_templates.py
from typing import List

from pulsesim.errors import InvalidParameterError
from pulsesim.model import Task, TaskGraph


def _graph(rows) -> TaskGraph:
    """rows: (id, name, dependencies, optimistic, most_likely, pessimistic)"""
    return TaskGraph(Task(*row) for row in rows)


class ProjectTemplates:
    """Collection of predefined project templates"""

    @staticmethod
    def get_available_templates() -> List[str]:
        """Return list of available template names"""
        return [
            "Software Development (Default)",
            "Three-Phase Delivery",
            "Construction Project",
            "Marketing Campaign",
        ]

    @staticmethod
    def get_template(template_name: str) -> TaskGraph:
        """Return TaskGraph for specified template"""
        templates = {
            "Software Development (Default)": ProjectTemplates._software_development,
            "Three-Phase Delivery": ProjectTemplates._three_phase_delivery,
            "Construction Project": ProjectTemplates._construction_project,
            "Marketing Campaign": ProjectTemplates._marketing_campaign,
        }
        if template_name not in templates:
            raise InvalidParameterError(
                f"Unknown template {template_name!r}; expected one of {list(templates)}")
        return templates[template_name]()

    @staticmethod
    def _software_development() -> TaskGraph:
        """Software development project template"""
        return _graph([
            (1, "Requirements Analysis", [], 3, 5, 10),
            (2, "UI Design", [1], 4, 7, 12),
            (3, "Backend Architecture", [1], 5, 8, 14),
            (4, "Frontend Development", [2], 8, 12, 20),
            (5, "Backend Development", [3], 10, 15, 25),
            (6, "Integration", [4, 5], 4, 6, 10),
            (7, "Testing", [6], 5, 8, 15),
            (8, "Deployment", [7], 2, 3, 5),
        ])

    @staticmethod
    def _three_phase_delivery() -> TaskGraph:
        """Minimal linear chain"""
        return _graph([
            (1, "Design", [], 5, 10, 20),
            (2, "Development", [1], 10, 15, 25),
            (3, "Testing", [2], 3, 5, 10),
        ])

    @staticmethod
    def _construction_project() -> TaskGraph:
        """Construction project template"""
        return _graph([
            (1, "Site Survey & Planning", [], 5, 7, 10),
            (2, "Foundation Work", [1], 10, 14, 25),
            (3, "Structural Framework", [2], 16, 21, 32),
            (4, "Electrical Installation", [3], 8, 10, 15),
            (5, "Plumbing Installation", [3], 6, 8, 12),
            (6, "Interior Finishing", [4, 5], 12, 15, 20),
            (7, "Exterior Work", [3], 9, 12, 18),
            (8, "Final Inspection", [6, 7], 2, 3, 4),
        ])

    @staticmethod
    def _marketing_campaign() -> TaskGraph:
        """Marketing campaign template"""
        return _graph([
            (1, "Market Research", [], 8, 10, 14),
            (2, "Strategy Development", [1], 6, 7, 9),
            (3, "Creative Design", [2], 10, 14, 21),
            (4, "Content Creation", [2], 9, 12, 17),
            (5, "Media Planning", [2], 4, 5, 7),
            (6, "Campaign Launch", [3, 4, 5], 2, 3, 6),
            (7, "Performance Analysis", [6], 6, 7, 9),
        ])
