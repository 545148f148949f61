"""Engine layer of the orchestrator.

- ``resolver``: merges workspace defaults into library configuration
- ``cleaner``: keep-list aware removal of generated files
- ``sources``: fetching and verifying pinned API corpora
- ``dispatcher``: one-shot clean / generate / format / post-generate runs
- ``toolchain`` and ``updater``: incremental regeneration driven by corpus
  history, and onboarding of new APIs
- ``oneshot``: generating a single API with the generator image
"""
