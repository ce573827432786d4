"""
Bottom-up value propagation over the code tree.

Every surviving node ends up with a strictly positive value. Branches that
resolve to zero are pruned: they are not rendered and cannot be focused.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .records import TreeNode

logger = logging.getLogger(__name__)

__all__ = [
    "DIRECT_SUFFIX",
    "direct_amount_id",
    "enrich_tree",
    "node_values",
    "unattributed_amounts",
]

DIRECT_SUFFIX = "/"


def direct_amount_id(code: str) -> str:
    """Id of the child that carries an internal node's own amount."""
    return f"{code}{DIRECT_SUFFIX}"


def enrich_tree(tree: TreeNode, amounts: Mapping[str, int]) -> TreeNode | None:
    """
    Attach aggregated amounts to ``tree``, pruning zero branches.

    Tree leaves take ``amounts[id]``. Internal nodes take the sum of their
    positive children; a node whose children all pruned falls back to the
    amount recorded for its own code. Nodes left without a positive value
    return None and are detached from their parent.

    A code can be an effective leaf in one chapter and have sub-codes in
    another. When such a node keeps children, its own amount is appended as
    an extra leaf child (id ``"<code>/"``, same name) so that every parent
    still equals the sum of its children and no amount is lost.

    The input tree is not modified; a fresh tree is returned.

    Args:
        tree: Tree from :func:`budgetlab.core.hierarchy.build_hierarchy`
        amounts: ``code -> amount`` map of effective leaves

    Returns:
        Enriched tree, or None when nothing in the tree carries a value
    """
    direct = amounts.get(tree.id, 0)
    if not tree.children:
        if direct > 0:
            return TreeNode(id=tree.id, name=tree.name, value=direct)
        return None

    kept = []
    for child in tree.children:
        enriched = enrich_tree(child, amounts)
        if enriched is not None:
            kept.append(enriched)

    if not kept:
        if direct > 0:
            return TreeNode(id=tree.id, name=tree.name, value=direct)
        return None

    if direct > 0:
        logger.debug(
            "Node %s keeps children; direct amount %d kept as %s",
            tree.id,
            direct,
            direct_amount_id(tree.id),
        )
        kept.append(
            TreeNode(id=direct_amount_id(tree.id), name=tree.name, value=direct)
        )
    return TreeNode(
        id=tree.id,
        name=tree.name,
        children=tuple(kept),
        value=sum(child.value for child in kept),
    )


def node_values(tree: TreeNode | None) -> dict[str, int]:
    """``id -> value`` for every node of an enriched tree."""
    if tree is None:
        return {}
    return {node.id: node.value or 0 for node in tree.iter_nodes()}


def unattributed_amounts(
    tree: TreeNode | None, amounts: Mapping[str, int]
) -> dict[str, int]:
    """
    Amounts that did not reach the enriched tree.

    These are the codes the hierarchy does not contain. Useful when auditing
    reconciliation output: the tree total equals the reconciled total
    exactly when this map is empty.
    """
    carried = set()
    if tree is not None:
        carried = {node.id for node in tree.iter_nodes() if not node.children}
    missing: dict[str, int] = {}
    for code, value in amounts.items():
        if value <= 0:
            continue
        if code not in carried and direct_amount_id(code) not in carried:
            missing[code] = value
    return missing
