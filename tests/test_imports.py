def test_imports():
    """
    @brief
    Verifies that all core Alchemist packages are importable.

    @details
    Importing alchemist.fixes also runs the registry coverage check, so a
    rule type without a suggestion provider fails here first.
    """
    import alchemist
    import alchemist.dataloader
    import alchemist.export.dataset_export
    import alchemist.fixes
    import alchemist.normalizer
    import alchemist.rules
    import alchemist.store.state
    import alchemist.validator

    # --- Assert ---
    assert all(
        [
            alchemist,
            alchemist.dataloader,
            alchemist.export.dataset_export,
            alchemist.fixes,
            alchemist.normalizer,
            alchemist.rules,
            alchemist.store.state,
            alchemist.validator,
        ]
    )
    assert alchemist.__version__
