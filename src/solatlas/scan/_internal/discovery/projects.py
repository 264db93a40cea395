"""Project (.csproj) metadata heuristics and solution runtime derivation.

Both SDK-style and legacy (namespaced, ``TargetFrameworkVersion``) project
files are understood. Nothing is evaluated: conditions, imports and
Directory.Build.props are ignored.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from solatlas.core.errors import ScanError

_TEST_PACKAGE_PREFIXES = ("xunit", "nunit", "mstest.")


@dataclass(frozen=True, slots=True)
class ProjectMetadata:
    target_frameworks: str | None = None
    project_type: str = "App"
    platform: str | None = None
    ui_stack: str | None = None
    is_web_app: bool = False
    is_class_library: bool = False
    is_test_project: bool = False


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _is_true(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def net_framework_tfm(version: str | None) -> str | None:
    """``v4.7.2`` -> ``net472``, ``v4.8`` -> ``net48``; None for non 4.x values."""
    if not version or not version.strip():
        return None
    text = version.strip()
    if text[:1].lower() == "v":
        text = text[1:]
    parts = [p.strip() for p in text.split(".") if p.strip()]
    if not parts or not parts[0].isdigit() or int(parts[0]) != 4:
        return None
    minor = int(parts[1]) if len(parts) >= 2 and parts[1].isdigit() else 0
    if len(parts) >= 3 and parts[2].isdigit():
        return f"net4{minor}{int(parts[2])}"
    return f"net4{minor}"


def parse_project_xml(content: str) -> ProjectMetadata:
    """Derive project metadata from .csproj XML.

    Raises:
        ET.ParseError: On malformed XML.
    """
    root = ET.fromstring(content)
    sdk = root.get("Sdk", "") or ""
    sdk_lower = sdk.lower()

    properties: dict[str, str] = {}
    for group in root.iter():
        if _local(group.tag) != "PropertyGroup":
            continue
        for prop in group:
            name = _local(prop.tag)
            value = (prop.text or "").strip()
            if value and name not in properties:
                properties[name] = value

    def include_attrs(element_name: str, attr: str = "Include") -> list[str]:
        return [
            el.get(attr, "").strip()
            for el in root.iter()
            if _local(el.tag) == element_name and el.get(attr, "").strip()
        ]

    packages = [p.lower() for p in include_attrs("PackageReference")]
    assemblies = [a.lower() for a in include_attrs("Reference")]
    imports = [i.replace("\\", "/").lower() for i in include_attrs("Import", "Project")]

    tfv = properties.get("TargetFrameworkVersion")
    target_frameworks = (
        properties.get("TargetFrameworks")
        or properties.get("TargetFramework")
        or net_framework_tfm(tfv)
        or tfv
        or properties.get("TargetFrameworkIdentifier")
    )

    is_ios_legacy = (
        "xamarin.ios" in assemblies
        or any("/xamarin/ios/" in i or i.endswith("xamarin.ios.csharp.targets") for i in imports)
        or bool(properties.get("IPhoneResourcePrefix"))
    )
    is_android_legacy = any(
        "/xamarin/android/" in i or i.endswith("xamarin.android.csharp.targets") for i in imports
    )
    if not target_frameworks:
        if is_ios_legacy:
            target_frameworks = "Xamarin.iOS"
        elif is_android_legacy:
            target_frameworks = "Xamarin.Android"

    is_maui = (
        _is_true(properties.get("UseMaui"))
        or "microsoft.net.sdk.maui" in sdk_lower
        or any(p.startswith("microsoft.maui") for p in packages)
    )
    is_xamarin = any(p.startswith(("xamarin.", "xamarinforms")) for p in packages)

    is_test = _is_true(properties.get("IsTestProject")) or any(
        p.startswith(_TEST_PACKAGE_PREFIXES) or p == "microsoft.net.test.sdk" for p in packages
    )
    is_web = "microsoft.net.sdk.web" in sdk_lower or any(
        p.startswith("microsoft.aspnetcore.") for p in packages
    )
    output_type = (properties.get("OutputType") or "").lower()
    is_exe = output_type in ("exe", "winexe")
    is_library = not is_web and not is_test and not is_exe

    is_blazor = "microsoft.net.sdk.blazorwebassembly" in sdk_lower or any(
        p.startswith("microsoft.aspnetcore.components") for p in packages
    )
    is_mvc = is_web and any(p.startswith("microsoft.aspnetcore.mvc") for p in packages)
    is_razor_pages = is_web and any(
        p.startswith("microsoft.aspnetcore.mvc.razorpages") for p in packages
    )
    use_wpf = _is_true(properties.get("UseWPF"))
    use_winforms = _is_true(properties.get("UseWindowsForms"))
    is_html_tooling = not is_web and not target_frameworks

    if is_ios_legacy:
        platform: str | None = "iOS"
    elif is_android_legacy:
        platform = "Android"
    elif is_maui:
        platform = "Multi-platform"
    elif is_xamarin:
        platform = "Mobile"
    elif is_web:
        platform = "Web"
    elif use_wpf or use_winforms:
        platform = "Windows"
    else:
        platform = None

    ui_stack: str | None = None
    for flag, label in (
        (is_maui, "MAUI"),
        (is_xamarin, "Xamarin"),
        (is_blazor, "Blazor"),
        (is_mvc, "MVC"),
        (is_razor_pages, "RazorPages"),
        (use_wpf, "WPF"),
        (use_winforms, "WinForms"),
        (is_web, "Web"),
        (is_html_tooling, "HTML"),
    ):
        if flag:
            ui_stack = label
            break

    if is_test:
        project_type = "Test"
    elif is_web:
        project_type = "Web"
    elif is_library:
        project_type = "Library"
    else:
        project_type = "App"

    return ProjectMetadata(
        target_frameworks=target_frameworks.strip() if target_frameworks else None,
        project_type=project_type,
        platform=platform,
        ui_stack=ui_stack,
        is_web_app=is_web,
        is_class_library=is_library,
        is_test_project=is_test,
    )


def read_project_metadata(csproj_path: Path) -> ProjectMetadata:
    """Read and interpret one .csproj.

    Raises:
        ScanError: When the file cannot be read or is not well-formed XML.
    """
    try:
        content = csproj_path.read_text(encoding="utf-8-sig", errors="replace")
        return parse_project_xml(content)
    except OSError as e:
        raise ScanError.project_file_invalid(str(csproj_path), str(e)) from e
    except ET.ParseError as e:
        raise ScanError.project_file_invalid(str(csproj_path), str(e)) from e


# =============================================================================
# Solution runtime
# =============================================================================


def _split_tfms(values: Iterable[str | None]) -> list[str]:
    return [t.strip() for v in values if v for t in v.split(";") if t.strip()]


def _modern_version(tfm: str) -> float | None:
    """``net8.0`` -> 8.0, ``net10.0-windows`` -> 10.0, ``net80`` -> 8.0."""
    if not tfm.lower().startswith("net"):
        return None
    rest = tfm[3:].split("-", 1)[0]
    if rest.lower().startswith(("standard", "framework")):
        return None
    if "." not in rest:
        if len(rest) == 2 and rest.isdigit():
            return int(rest[0]) + int(rest[1]) / 10
        return None
    try:
        return float(rest)
    except ValueError:
        return None


def _framework_version(tfm: str) -> str | None:
    """``net472`` -> ``4.7.2``, ``net48`` -> ``4.8``, ``v4.6.1`` -> ``4.6.1``."""
    lowered = tfm.lower()
    if lowered.startswith("net4"):
        digits = tfm[3:]
        if len(digits) == 3:
            return f"{digits[0]}.{digits[1]}.{digits[2]}"
        if len(digits) == 2:
            return f"{digits[0]}.{digits[1]}"
    if lowered.startswith("v"):
        return tfm[1:]
    return None


def derive_runtime(target_frameworks: Iterable[str | None]) -> tuple[str, str | None]:
    """(runtime platform, runtime version) for a solution's projects.

    Any modern TFM makes the solution ``.NET`` with the highest version seen;
    otherwise .NET Framework TFMs yield ``.NET Framework``.
    """
    tfms = _split_tfms(target_frameworks)
    any_framework = any(t.lower().startswith(("net4", "v4")) for t in tfms)
    any_modern = any(
        t.lower().startswith("net")
        and not t.lower().startswith(("net4", "netstandard", "netframework"))
        for t in tfms
    )

    if any_modern:
        versions = [v for v in (_modern_version(t) for t in tfms) if v is not None]
        return ".NET", f"{max(versions):.1f}" if versions else None
    if any_framework:
        fx = [v for v in (_framework_version(t) for t in tfms) if v is not None]
        return ".NET Framework", max(fx) if fx else None
    return ".NET", None
