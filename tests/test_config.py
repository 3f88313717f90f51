import pytest

from transmission_telegram.config import DEFAULT_RPC_URL, LIVE_TICKS, load_config


def test_flags() -> None:
    config = load_config(
        ["-token=123:abc", "-master=@Bob", "-master", "alice", "-url", "http://nas:9091/transmission/rpc", "-no-live"],
        environ={},
    )
    assert config.token == "123:abc"
    assert config.masters == frozenset({"bob", "alice"})
    assert config.rpc_url == "http://nas:9091/transmission/rpc"
    assert config.no_live
    assert config.live_ticks == LIVE_TICKS


def test_environment_fallbacks() -> None:
    config = load_config(
        [],
        environ={"TT_BOTT": "999:xyz", "TT_MASTERS": "@Bob, carol", "TR_AUTH": "admin:s3:cret"},
    )
    assert config.token == "999:xyz"
    assert config.masters == frozenset({"bob", "carol"})
    assert config.username == "admin"
    assert config.password == "s3:cret"
    assert config.rpc_url == DEFAULT_RPC_URL


def test_flags_win_over_environment() -> None:
    config = load_config(["--token", "flag", "--username", "u"], environ={"TT_BOTT": "env", "TT_MASTERS": "bob", "TR_AUTH": "x:y"})
    assert config.token == "flag"
    assert config.username == "u"
    assert config.password is None


@pytest.mark.parametrize(
    ("argv", "environ"),
    [
        ([], {}),
        (["-token=abc"], {}),
        (["-master=bob"], {}),
        (["-token=abc", "-master=@"], {}),
    ],
)
def test_missing_mandatory_arguments_exit(argv, environ, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        load_config(argv, environ=environ)
    assert exc.value.code == 1
    assert "Mandatory argument missing" in capsys.readouterr().err
