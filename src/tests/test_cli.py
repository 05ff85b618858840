import json

import chains_cli


def test_cli_writes_chains(shop_project, tmp_path, capsys):
    out = tmp_path / "out"
    code = chains_cli.main(["--project", str(shop_project), "--output", str(out), "--snapshot"])
    assert code == 0

    lines = (out / "chains.jsonl").read_text().splitlines()
    chains = [json.loads(line) for line in lines]
    assert {c["throw_from"] for c in chains} == {
        "com.acme.Repository#find(String)", "java.lang.Thread#sleep(long)"}
    assert (out / "snapshot.json").exists()

    printed = capsys.readouterr().out
    assert "Exception sources: 2" in printed
    assert "Escaping chains: 1" in printed


def test_cli_method_filter_and_exact_mode(shop_project, tmp_path):
    out = tmp_path / "out"
    code = chains_cli.main(["--project", str(shop_project), "--output", str(out),
                            "--method", "Thread", "--exact"])
    assert code == 0
    chains = [json.loads(line) for line in (out / "chains.jsonl").read_text().splitlines()]
    assert [c["throw_from"] for c in chains] == ["java.lang.Thread#sleep(long)"]
    assert chains[0]["escapes"]


def test_cli_unknown_incompatible_flag(shop_project, tmp_path):
    args = chains_cli.build_parser().parse_args(
        ["--project", str(shop_project), "--unknown-incompatible", "--platform-prefix", "com.acme"])
    config = chains_cli.config_from_args(args)
    assert not config.unknown_class_compatible
    assert config.platform_prefixes == ("com.acme",)


def test_cli_rejects_missing_project(tmp_path, capsys):
    assert chains_cli.main(["--project", str(tmp_path / "nope")]) == 1
    assert "not a directory" in capsys.readouterr().out
