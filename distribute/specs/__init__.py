"""Builder and publisher specs and their argument vectors."""

from .builders import AndroidBuilder, BuilderSpec, CustomBuilder, IosBuilder, builder_source, parse_builder
from .common import ArtifactOptions, BuildOptions, Invocation, ToolSpec, render_command, render_invocation
from .publishers import (
    FastlanePublisher,
    FirebasePublisher,
    GithubPublisher,
    PublisherSpec,
    XcrunPublisher,
    parse_publisher,
)

BUILDER_KINDS = ("android", "ios", "custom")
PUBLISHER_KINDS = ("firebase", "fastlane", "xcrun", "github")

__all__ = [
    "BUILDER_KINDS",
    "PUBLISHER_KINDS",
    # builders
    "AndroidBuilder",
    "BuilderSpec",
    "CustomBuilder",
    "IosBuilder",
    "builder_source",
    "parse_builder",
    # common
    "ArtifactOptions",
    "BuildOptions",
    "Invocation",
    "ToolSpec",
    "render_command",
    "render_invocation",
    # publishers
    "FastlanePublisher",
    "FirebasePublisher",
    "GithubPublisher",
    "PublisherSpec",
    "XcrunPublisher",
    "parse_publisher",
]
