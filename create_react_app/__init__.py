"""create-react-app -- bootstrap a new React project.

Validates the target directory and toolchain, resolves which
``react-scripts`` and template packages to install, runs npm or Yarn, and
hands over to the installed package's ``scripts/init.js``.

Quick usage::

    from create_react_app.config import Config
    from create_react_app.pipeline import AppCreator

    config = Config(project_name="my-app", template="typescript")
    result = await AppCreator(config).run()
"""

__version__ = "5.0.1"

__all__ = ["__version__"]
