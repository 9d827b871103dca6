"""
Test configuration and fixtures for the archeflow test suite.
"""
import pytest
from loguru import logger

from archeflow.ast import (
    ConditionalNode,
    GroupNode,
    InputBoolean,
    InputEnum,
    InputList,
    InputOption,
    InputText,
    ModelValue,
    OutputNode,
    StepNode,
)
from archeflow.config import EngineSettings
from archeflow.types import OutputKind


@pytest.fixture
def settings() -> EngineSettings:
    """Settings independent of the process environment."""
    return EngineSettings()


@pytest.fixture
def pkg_tree() -> GroupNode:
    """One required text input and one output."""
    return GroupNode().add(
        InputText(name="pkg", label="Package", default="com.example", prompt="Java package"),
        OutputNode(target="src/main.txt"),
    )


@pytest.fixture
def app_tree() -> GroupNode:
    """A descriptor with nested scopes, options, a conditional and a model.

    Input paths: name, flavor, flavor.docker, flavor.features
    """
    return GroupNode(current_directory="/archetype").add(
        StepNode(label="Application").add(
            InputText(name="name", label="Project name", default="myapp"),
            InputEnum(name="flavor", label="Flavor", default="se").add(
                InputOption(value="se", label="Helidon SE").add(
                    InputBoolean(name="docker", label="Docker support", default=False).add(
                        OutputNode(source="Dockerfile.se", target="Dockerfile",
                                   current_directory="/archetype/se"),
                    ),
                    OutputNode(kind=OutputKind.TEMPLATES, source="se-files", includes=("**/*.java",)),
                ),
                InputOption(value="mp", label="Helidon MP").add(
                    InputList(name="features", label="Features", default=("cors",)).add(
                        InputOption(value="cors").add(OutputNode(target="cors.yaml")),
                        InputOption(value="metrics").add(OutputNode(target="metrics.yaml")),
                    ),
                    OutputNode(kind=OutputKind.TEMPLATES, source="mp-files"),
                ),
            ),
        ),
        ConditionalNode(path="flavor", equals="mp").add(
            OutputNode(source="mp.properties", target="microprofile-config.properties"),
        ),
        OutputNode(kind=OutputKind.TEMPLATE, source="README.md.mustache", target="README.md",
                   engine="mustache").add(ModelValue(key="title", value="My App")),
    )


@pytest.fixture
def log_messages():
    """Collect archeflow log records emitted through loguru."""
    messages = []
    logger.enable("archeflow")
    handler_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
    logger.disable("archeflow")
