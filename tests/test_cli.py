"""End-to-end tests for the minio-deploy command line."""

from __future__ import annotations

from pathlib import Path

import pytest

from minio_deploy import cli
from minio_deploy.errors import ProvisioningError

from conftest import client_error


def _write_env(path: Path, **values: str) -> Path:
    env = path / ".env"
    env.write_text("".join(f"{k}={v}\n" for k, v in values.items()))
    return env


@pytest.fixture
def env_file(tmp_path: Path, site_dir: Path) -> Path:
    return _write_env(
        tmp_path,
        MINIO_URL="http://localhost:9000",
        MINIO_ACCESS_KEY="minioadmin",
        MINIO_SECRET_KEY="minioadmin",
        MINIO_BUCKET="site",
        SOURCE_DIR=str(site_dir),
    )


@pytest.fixture
def no_network(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(**kwargs):
        raise AssertionError("no S3 client may be created")

    monkeypatch.setattr(cli, "make_s3_client", _fail)


@pytest.fixture
def use_fake(monkeypatch: pytest.MonkeyPatch, fake_s3):
    monkeypatch.setattr(cli, "make_s3_client", lambda **kwargs: fake_s3)
    return fake_s3


class TestDeploy:
    def test_full_mirror(self, env_file: Path, use_fake, capsys) -> None:
        code = cli.main(["deploy", "--env-file", str(env_file), "--no-progress"])

        assert code == 0
        assert use_fake.keys() == {"index.html", "assets/app.js"}
        assert use_fake.objects[("site", "index.html")]["ContentType"] == "text/html"
        assert "uploaded=2 deleted=0" in capsys.readouterr().out

    def test_remove_extra_flag(self, env_file: Path, use_fake) -> None:
        use_fake.put("assets/old.js")
        assert cli.main(["deploy", "--env-file", str(env_file), "--no-progress", "--remove-extra"]) == 0
        assert "assets/old.js" not in use_fake.keys()

    def test_remove_extra_from_env_file(self, tmp_path: Path, env_file: Path, use_fake) -> None:
        env_file.write_text(env_file.read_text() + "MINIO_REMOVE_EXTRA=1\n")
        use_fake.put("assets/old.js")
        assert cli.main(["deploy", "--env-file", str(env_file), "--no-progress"]) == 0
        assert "assets/old.js" not in use_fake.keys()

    def test_keep_extra_overrides_env(self, env_file: Path, use_fake) -> None:
        env_file.write_text(env_file.read_text() + "MINIO_REMOVE_EXTRA=1\n")
        use_fake.put("assets/old.js")
        assert cli.main(["deploy", "--env-file", str(env_file), "--no-progress", "--keep-extra"]) == 0
        assert "assets/old.js" in use_fake.keys()

    def test_prefix_flag_and_bucket_creation(self, env_file: Path, use_fake) -> None:
        code = cli.main(
            ["deploy", "--env-file", str(env_file), "--no-progress", "--bucket", "fresh", "--prefix", "/w/"]
        )
        assert code == 0
        assert use_fake.created == [{"Bucket": "fresh"}]
        assert use_fake.keys("fresh") == {"w/index.html", "w/assets/app.js"}

    def test_progress_bar_goes_to_stderr(self, env_file: Path, use_fake, capsys) -> None:
        assert cli.main(["deploy", "--env-file", str(env_file), "-c", "3"]) == 0
        captured = capsys.readouterr()
        assert "files 2/2" in captured.err
        assert "files 2/2" not in captured.out

    def test_dry_run_changes_nothing(self, env_file: Path, use_fake, capsys) -> None:
        use_fake.put("assets/old.js")
        code = cli.main(["deploy", "--env-file", str(env_file), "--dry-run", "--remove-extra", "--bucket", "site"])

        out = capsys.readouterr().out
        assert code == 0
        assert use_fake.uploads == []
        assert use_fake.delete_batches == []
        assert "upload index.html -> index.html" in out
        assert "delete assets/old.js" in out

    def test_dry_run_does_not_create_bucket(self, env_file: Path, use_fake, capsys) -> None:
        assert cli.main(["deploy", "--env-file", str(env_file), "--dry-run", "--bucket", "fresh"]) == 0
        assert use_fake.created == []
        assert "does not exist yet" in capsys.readouterr().out


class TestDeployFailures:
    def test_missing_bucket_reported_without_network(self, tmp_path: Path, site_dir: Path, no_network, capsys) -> None:
        env = _write_env(
            tmp_path,
            MINIO_URL="http://localhost:9000",
            MINIO_ACCESS_KEY="a",
            MINIO_SECRET_KEY="b",
            SOURCE_DIR=str(site_dir),
        )
        code = cli.main(["deploy", "--env-file", str(env)])

        assert code != 0
        assert "MINIO_BUCKET" in capsys.readouterr().err

    def test_malformed_url_reported_without_network(self, tmp_path: Path, site_dir: Path, no_network, capsys) -> None:
        env = _write_env(
            tmp_path,
            MINIO_URL="localhost:9000",
            MINIO_ACCESS_KEY="a",
            MINIO_SECRET_KEY="b",
            MINIO_BUCKET="site",
            SOURCE_DIR=str(site_dir),
        )
        code = cli.main(["deploy", "--env-file", str(env)])

        captured = capsys.readouterr()
        assert code == 1
        assert "MINIO_URL must be an http(s) URL with a host, got 'localhost:9000'" in captured.err
        assert "Traceback" not in captured.err
        assert "Set the variables" not in captured.out

    def test_every_missing_key_listed(self, tmp_path: Path, no_network, capsys) -> None:
        code = cli.main(["deploy", "--env-file", str(tmp_path / "absent.env")])
        err = capsys.readouterr().err
        assert code == 1
        for key in ("MINIO_URL", "MINIO_ACCESS_KEY", "MINIO_SECRET_KEY", "MINIO_BUCKET"):
            assert key in err

    def test_missing_source_dir(self, tmp_path: Path, env_file: Path, no_network, capsys) -> None:
        code = cli.main(["deploy", "--env-file", str(env_file), "--source-dir", str(tmp_path / "build")])
        assert code == 1
        assert "Source directory not found" in capsys.readouterr().err

    def test_console_port_hint_printed(self, env_file: Path, use_fake, capsys) -> None:
        use_fake.head_error = client_error("400", "S3 API Request made to Console port.")
        code = cli.main(["deploy", "--env-file", str(env_file), "--endpoint-url", "http://localhost:9001"])

        err = capsys.readouterr().err
        assert code == 1
        assert "API port" in err
        assert "Traceback" not in err

    def test_upload_failure_exits_non_zero(self, env_file: Path, use_fake, capsys) -> None:
        use_fake.fail_upload_keys.add("index.html")
        code = cli.main(["deploy", "--env-file", str(env_file), "--no-progress"])
        assert code == 1
        assert "Upload of index.html failed" in capsys.readouterr().err

    def test_mc_transport_dispatch(self, env_file: Path, no_network, monkeypatch: pytest.MonkeyPatch) -> None:
        seen = {}

        def fake_mirror(conf, dry_run=False):
            seen["conf"] = conf
            seen["dry_run"] = dry_run

        monkeypatch.setattr(cli, "mirror_with_mc", fake_mirror)
        assert cli.main(["deploy", "--env-file", str(env_file), "--transport", "mc"]) == 0
        assert seen["conf"].bucket == "site"
        assert seen["dry_run"] is False

    def test_mc_failure_exits_non_zero(self, env_file: Path, no_network, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_mirror(conf, dry_run=False):
            raise ProvisioningError("mc mb failed: mc exited with code 1")

        monkeypatch.setattr(cli, "mirror_with_mc", fake_mirror)
        assert cli.main(["deploy", "--env-file", str(env_file), "--transport", "mc"]) == 1


class TestInitEnvCommand:
    def test_creates_env_file(self, tmp_path: Path) -> None:
        target = tmp_path / ".env"
        assert cli.main(["init-env", "--env-file", str(target)]) == 0
        assert "MINIO_URL=http://localhost:9000" in target.read_text()

    def test_unwritable_env_file_exits_non_zero(self, tmp_path: Path, capsys) -> None:
        target = tmp_path / "missing-dir" / ".env"
        assert cli.main(["init-env", "--env-file", str(target)]) == 1
        assert not target.exists()
        assert "Traceback" not in capsys.readouterr().err

    def test_requires_a_command(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 2
