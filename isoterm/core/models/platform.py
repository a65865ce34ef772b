"""
Target triple model - which pre-built binary flavour this host can run.

A triple is derived once per invocation by the platform identifier and
then shared read-only by every tool resolution.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TargetTriple(BaseModel):
    """Canonical ``arch-vendor-os[-env]`` identifier.

    Examples::

        x86_64-unknown-linux-gnu
        aarch64-apple-darwin
        aarch64-linux-android     (vendor omitted, env = android)
    """

    model_config = ConfigDict(frozen=True)

    arch: str
    vendor: str | None = "unknown"
    os: str
    env: str | None = None          # libc / runtime flavour (gnu, musl, android)

    def __str__(self) -> str:
        return "-".join(p for p in (self.arch, self.vendor, self.os, self.env) if p)

    @property
    def is_android(self) -> bool:
        return self.env == "android"

    def with_env(self, env: str | None, vendor: str | None = "unknown") -> TargetTriple:
        """Return a sibling triple with a different runtime flavour."""
        return TargetTriple(arch=self.arch, vendor=vendor, os=self.os, env=env)

    def candidates(self) -> list[TargetTriple]:
        """This triple first, then runtime-compatible alternates.

        glibc hosts can run static musl builds, and Android can run the
        static linux-musl builds most projects publish instead of a
        dedicated android asset. A musl host gets no gnu fallback.
        """
        result = [self]
        if self.os == "linux" and self.env == "gnu":
            result.append(self.with_env("musl"))
        elif self.is_android:
            result.append(self.with_env("musl"))
        return result
