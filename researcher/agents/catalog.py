"""Known shadcn-compatible component registries.

Read-only and process-wide; stages only ever filter it.
"""

from dataclasses import dataclass
from typing import Literal

RegistryCategory = Literal["general", "creative", "functional", "ai", "retro"]


@dataclass(frozen=True)
class RegistryInfo:
    """A component registry."""

    name: str
    url: str
    category: RegistryCategory
    description: str

    @property
    def slug(self) -> str:
        """Name without the leading ``@``, as used in install commands."""
        return self.name.lstrip("@")


COMPONENT_REGISTRIES: tuple[RegistryInfo, ...] = (
    RegistryInfo(
        name="@magicui",
        url="https://magicui.design",
        category="creative",
        description="150+ free and open-source animated components for landing pages",
    ),
    RegistryInfo(
        name="@aceternity",
        url="https://ui.aceternity.com",
        category="creative",
        description="Modern component library with unique animations and effects",
    ),
    RegistryInfo(
        name="@shadcnblocks",
        url="https://shadcnblocks.com",
        category="general",
        description="Hundreds of extra blocks for shadcn/ui",
    ),
    RegistryInfo(
        name="@origin-ui",
        url="https://originui.com",
        category="general",
        description="Beautiful, copy-paste UI components",
    ),
    RegistryInfo(
        name="@cult-ui",
        url="https://www.cult-ui.com",
        category="creative",
        description="Curated set of headless and composable components with Framer Motion",
    ),
    RegistryInfo(
        name="@tremor",
        url="https://www.tremor.so",
        category="functional",
        description="React components for dashboards and data visualization",
    ),
    RegistryInfo(
        name="@plate",
        url="https://platejs.org",
        category="functional",
        description="AI-powered rich text editor for React",
    ),
    RegistryInfo(
        name="@assistant-ui",
        url="https://www.assistant-ui.com",
        category="ai",
        description="React primitives for AI chat interfaces",
    ),
    RegistryInfo(
        name="@supabase",
        url="https://supabase.com/ui",
        category="functional",
        description="Components that connect to Supabase backend",
    ),
    RegistryInfo(
        name="@clerk",
        url="https://clerk.com",
        category="functional",
        description="Authentication and user management components",
    ),
    RegistryInfo(
        name="@8bitcn",
        url="https://www.8bitcn.com",
        category="retro",
        description="8-bit styled retro components",
    ),
    RegistryInfo(
        name="@retroui",
        url="https://retroui.dev",
        category="retro",
        description="Neobrutalism styled components",
    ),
    RegistryInfo(
        name="@kokonutui",
        url="https://kokonutui.com",
        category="creative",
        description="Stunning components with Tailwind CSS and Motion",
    ),
    RegistryInfo(
        name="@billingsdk",
        url="https://billingsdk.com",
        category="functional",
        description="React components for SaaS billing and payments",
    ),
    RegistryInfo(
        name="@lytenyte",
        url="https://www.1771technologies.com",
        category="functional",
        description="High performance data grid component",
    ),
)


def find_registry(name: str) -> RegistryInfo | None:
    """Look up a catalog entry by exact name."""
    for registry in COMPONENT_REGISTRIES:
        if registry.name == name:
            return registry
    return None
