import pytest

from pulsesim.model import Task, TaskGraph
from pulsesim.project_templates import ProjectTemplates


class StubRandom:
    """Random source that replays fixed uniform draws"""

    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        if not self.values:
            raise AssertionError("random source exhausted")
        return self.values.pop(0)


@pytest.fixture
def chain_graph():
    return ProjectTemplates.get_template("Three-Phase Delivery")


@pytest.fixture
def software_graph():
    return ProjectTemplates.get_template("Software Development (Default)")


@pytest.fixture
def diamond_graph():
    return TaskGraph([
        Task("A", "Kickoff", [], 1, 2, 3),
        Task("B", "Build", ["A"], 4, 5, 6),
        Task("C", "Docs", ["A"], 2, 3, 4),
        Task("D", "Release", ["B", "C"], 1, 1, 2),
    ])
