"""Derive a project description from a packaging .SRCINFO manifest."""

from __future__ import annotations

from gluebuddy.models import MAX_DESCRIPTION_LENGTH, MAX_LISTED_PACKAGES

PKGDESC_PREFIX = "pkgdesc = "
PKGNAME_PREFIX = "pkgname = "
ELLIPSIS = "..."


def project_description(srcinfo: str) -> str:
    """
    Build ``"<pkgdesc>\\n\\npackages: <pkgnames>"`` from the manifest text.

    The first pkgdesc wins. At most 16 package names are listed; an ellipsis
    marks that more exist. The result is cut to 2000 characters.
    """
    description = ""
    pkgnames: list[str] = []
    truncated = False

    for line in srcinfo.splitlines():
        line = line.strip()
        if line.startswith(PKGDESC_PREFIX) and not description:
            description = line[len(PKGDESC_PREFIX) :]
        elif line.startswith(PKGNAME_PREFIX):
            if len(pkgnames) < MAX_LISTED_PACKAGES:
                pkgnames.append(line[len(PKGNAME_PREFIX) :])
            else:
                truncated = True

    if truncated:
        pkgnames.append(ELLIPSIS)

    return f"{description}\n\npackages: {' '.join(pkgnames)}"[:MAX_DESCRIPTION_LENGTH]
