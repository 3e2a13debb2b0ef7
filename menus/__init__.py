# Interactive prompts; import the submodules directly, e.g. `from menus.setup_menu import setup_menu`
