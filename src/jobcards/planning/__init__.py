"""Pure planning logic: WBS paths, jobcard listing, HSE checklists, roles."""
