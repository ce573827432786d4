"""
Smoke tests to verify basic imports and functionality.
"""


def test_import_budgetlab():
    """Test that we can import the main package."""
    import budgetlab

    assert hasattr(budgetlab, "__version__")
    assert budgetlab.__version__ == "0.1.0"


def test_public_api_is_exported():
    import budgetlab

    for name in budgetlab.__all__:
        assert hasattr(budgetlab, name), name


def test_import_core_components():
    """Test that core components can be imported."""
    from budgetlab.core import (
        BudgetSession,
        ZoomController,
        build_hierarchy,
        enrich_tree,
        partition_layout,
        resolve_amounts,
    )

    assert callable(build_hierarchy)
    assert callable(resolve_amounts)
    assert callable(enrich_tree)
    assert callable(partition_layout)
    assert ZoomController is not None
    assert BudgetSession is not None


def test_errors_share_a_base():
    from budgetlab import (
        BudgetLabError,
        ConfigError,
        DataFormatError,
        NoRenderableHierarchyError,
        UnknownNodeError,
    )

    for error in (ConfigError, DataFormatError, NoRenderableHierarchyError, UnknownNodeError):
        assert issubclass(error, BudgetLabError)
    assert issubclass(UnknownNodeError, KeyError)
    assert issubclass(ConfigError, ValueError)
