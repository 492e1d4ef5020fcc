"""Verify every module imports cleanly with no errors."""


def test_import_ppp():
    import ppp  # noqa: F401


def test_import_cli():
    import ppp.cli  # noqa: F401


def test_import_config():
    import ppp.config  # noqa: F401


def test_import_content():
    import ppp.content  # noqa: F401


def test_import_defaults():
    import ppp.defaults  # noqa: F401


def test_import_errors():
    import ppp.errors  # noqa: F401


def test_import_folders():
    import ppp.folders  # noqa: F401


def test_import_fs():
    import ppp.fs  # noqa: F401


def test_import_ids():
    import ppp.ids  # noqa: F401


def test_import_keywords():
    import ppp.keywords  # noqa: F401


def test_import_models():
    import ppp.models  # noqa: F401


def test_import_output():
    import ppp.output  # noqa: F401


def test_import_release():
    import ppp.release  # noqa: F401


def test_import_store():
    import ppp.store  # noqa: F401


def test_import_sync():
    import ppp.sync  # noqa: F401


def test_import_workspace():
    import ppp.workspace  # noqa: F401


def test_import_issues():
    import ppp.issues  # noqa: F401


def test_import_sprints():
    import ppp.sprints  # noqa: F401
