"""
The ownership labeler ties child resources to the Website that owns them. The
same label set is attached to each child and used as its selector, so the
children of a Website can always be found from its name alone.
"""

# Standard
from typing import Dict, Optional

# Local
from .constants import TYPE_LABEL_NAME, WEBSITE_KIND, WEBSITE_LABEL_NAME


def labels_for(name: str) -> Dict[str, str]:
    """Get the ownership labels for the children of the named Website

    Args:
        name:  str
            The name of the owning Website

    Returns:
        labels:  Dict[str, str]
            A new dict holding the ownership labels
    """
    return {
        WEBSITE_LABEL_NAME: name,
        TYPE_LABEL_NAME: WEBSITE_KIND,
    }


def label_selector_for(name: Optional[str] = None) -> str:
    """Render the ownership labels as a label selector string. If no name is
    given, the selector matches the children of every Website.
    """
    if name is None:
        return f"{TYPE_LABEL_NAME}={WEBSITE_KIND}"
    return ",".join(
        f"{key}={val}" for key, val in sorted(labels_for(name).items())
    )


def owner_name_from_labels(labels: Optional[dict]) -> Optional[str]:
    """Get the name of the owning Website from a child's labels, or None if the
    labels do not mark the object as a Website child
    """
    labels = labels or {}
    if labels.get(TYPE_LABEL_NAME) != WEBSITE_KIND:
        return None
    return labels.get(WEBSITE_LABEL_NAME)
