"""Shared fixtures for doccheck tests."""

import pytest
from pathlib import Path

from scripts.doccheck.config import get_default_config


@pytest.fixture
def config():
    """Default checker configuration."""
    return get_default_config()


@pytest.fixture
def write_doc(tmp_path):
    """Write a document under tmp_path and return its path."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_corpus(tmp_path):
    """Create a small, fully consistent documentation corpus."""
    (tmp_path / "configuration").mkdir()
    (tmp_path / "reference" / "forms").mkdir(parents=True)

    (tmp_path / "index.rst").write_text(
        "Documentation\n"
        "=============\n"
        "\n"
        "Read :doc:`/configuration/override_dir_structure` first, then the\n"
        ":ref:`form options <reference-form-option-label>`.\n"
    )

    (tmp_path / "configuration" / "override_dir_structure.rst").write_text(
        ".. _override-dir-structure:\n"
        "\n"
        "How to Override the Default Directory Structure\n"
        "===============================================\n"
        "\n"
        ".. _override-cache-dir:\n"
        "\n"
        "Override the Cache Directory\n"
        "----------------------------\n"
        "\n"
        ".. configuration-block::\n"
        "\n"
        "    .. code-block:: yaml\n"
        "\n"
        "        # config/packages/framework.yaml\n"
        "        framework:\n"
        "            cache_dir: '%kernel.project_dir%/var/cache'\n"
        "            router:\n"
        "                utf8: true\n"
        "\n"
        "    .. code-block:: xml\n"
        "\n"
        "        <!-- config/packages/framework.xml -->\n"
        '        <?xml version="1.0" encoding="UTF-8" ?>\n'
        '        <container xmlns="http://symfony.com/schema/dic/services"\n'
        '            xmlns:framework="http://symfony.com/schema/dic/symfony">\n'
        '            <framework:config cache-dir="%kernel.project_dir%/var/cache">\n'
        '                <framework:router utf8="true"/>\n'
        "            </framework:config>\n"
        "        </container>\n"
        "\n"
        "    .. code-block:: php\n"
        "\n"
        "        // config/packages/framework.php\n"
        "        $container->extension('framework', [\n"
        "            'cache_dir' => '%kernel.project_dir%/var/cache',\n"
        "            'router' => [\n"
        "                'utf8' => true,\n"
        "            ],\n"
        "        ]);\n"
        "\n"
        "See :ref:`override-dir-structure` for the other directories.\n"
    )

    (tmp_path / "reference" / "forms" / "options.rst").write_text(
        ".. _reference-form-option-label:\n"
        "\n"
        "label\n"
        "~~~~~\n"
        "\n"
        "Back to :ref:`the cache section <override-cache-dir>` or\n"
        ":doc:`../../index`.\n"
    )

    return tmp_path


@pytest.fixture
def broken_corpus(tmp_path):
    """Create a corpus with one violation of each kind."""
    (tmp_path / "a.rst").write_text(
        ".. _foo:\n"
        "\n"
        "Page A\n"
        "======\n"
        "\n"
        "See :ref:`missing-label`.\n"
    )
    (tmp_path / "b.rst").write_text(
        ".. _foo:\n"
        "\n"
        "Page B\n"
        "======\n"
        "\n"
        ".. configuration-block::\n"
        "\n"
        "    .. code-block:: yaml\n"
        "\n"
        "        a: 1\n"
        "        b: 2\n"
        "\n"
        "    .. code-block:: xml\n"
        "\n"
        "        <container>\n"
        "            <a>1</a>\n"
        "            <c>3</c>\n"
        "        </container>\n"
    )
    return tmp_path
