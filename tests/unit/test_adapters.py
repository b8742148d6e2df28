"""Unit tests for platform adapters."""

from pathlib import Path

import pytest

from cloudbase_sdk.adapters import (
    CallbackLocation,
    CloudbaseAdapter,
    NativePlatformAdapter,
    PlatformInfo,
    Runtime,
    WebPlatformAdapter,
    native_adapter,
    select_adapter,
    use_adapters,
    use_default_adapter,
)
from cloudbase_sdk.errors import InvalidParamsError
from cloudbase_sdk.http import HttpxTransport


def candidate(runtime: str, matches: bool, tag: str) -> CloudbaseAdapter:
    return CloudbaseAdapter(runtime=runtime, gen_adapter=lambda: tag, is_match=lambda: matches)


class TestSelection:
    def test_first_match_wins(self) -> None:
        selected = select_adapter(
            [
                candidate(Runtime.WX_MP, False, "mini-program"),
                candidate(Runtime.NATIVE, True, "native"),
                candidate(Runtime.WEB, True, "web"),
            ]
        )

        assert selected == ("native", Runtime.NATIVE)

    def test_single_candidate(self) -> None:
        assert select_adapter(candidate(Runtime.WEB, True, "web")) == ("web", Runtime.WEB)

    def test_use_adapters_installs_match(self) -> None:
        platform = PlatformInfo()

        assert use_adapters([candidate(Runtime.NATIVE, True, "native")], platform) is True
        assert platform.adapter == "native"
        assert platform.runtime == Runtime.NATIVE
        assert not platform.is_web

    def test_use_adapters_without_match(self) -> None:
        platform = PlatformInfo()

        assert use_adapters([candidate(Runtime.NATIVE, False, "native")], platform) is False
        assert platform.adapter is None
        assert platform.runtime == Runtime.WEB
        with pytest.raises(InvalidParamsError, match="no platform adapter"):
            platform.require_adapter()

    def test_use_default_adapter(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLOUDBASE_STORAGE_DIR", str(tmp_path))
        platform = PlatformInfo()

        use_default_adapter(platform)

        assert isinstance(platform.adapter, WebPlatformAdapter)
        assert platform.adapter.req_class is HttpxTransport
        assert platform.adapter.get_app_sign is None


class TestNativeAdapter:
    def test_factory_binds_app_sign(self, tmp_path: Path) -> None:
        selectable = native_adapter("com.example.app", storage_dir=tmp_path)
        adapter = selectable.gen_adapter()

        assert selectable.runtime == Runtime.NATIVE
        assert isinstance(adapter, NativePlatformAdapter)
        assert adapter.get_app_sign() == "com.example.app"
        assert adapter.local_storage.path == tmp_path / "native_storage.json"

    def test_without_sign(self, tmp_path: Path) -> None:
        assert NativePlatformAdapter(storage_dir=tmp_path).get_app_sign is None


class TestCallbackLocation:
    def test_assign_records_navigation(self) -> None:
        location = CallbackLocation("https://app.example.com/")

        location.assign("https://open.weixin.qq.com/connect/qrconnect?appid=x")

        assert location.navigations == ["https://open.weixin.qq.com/connect/qrconnect?appid=x"]
        assert location.href == location.last_navigation

    def test_set_href(self) -> None:
        location = CallbackLocation()
        assert location.last_navigation is None

        location.set_href("https://app.example.com/?code=abc")

        assert location.href == "https://app.example.com/?code=abc"
        assert location.navigations == []
