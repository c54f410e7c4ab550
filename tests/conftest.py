import pytest

from contentgen.completion import CompletionBackend
from contentgen.exceptions import CompletionError


class FakeBackend(CompletionBackend):
    """Returns canned completions and records the prompts it was given."""

    name = "fake"
    model = "fake-model"

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise CompletionError(self.error)
        return self.responses.pop(0)


@pytest.fixture
def fake_backend():
    return FakeBackend
