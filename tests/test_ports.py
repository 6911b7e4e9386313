from lesson_uploader.adapters.memory_credentials import InMemoryCredentialStore
from lesson_uploader.ports.credentials_port import CredentialStore
from lesson_uploader.ports.spreadsheet_port import SpreadsheetPort
from lesson_uploader.ports.video_host_port import VideoHostPort


class DummySpreadsheet:
    def get_values(self, cell_range: str) -> list[list[str]]:
        return []

    def batch_update(self, updates: list[tuple[str, str]]) -> None:
        return None


def test_spreadsheet_port_runtime_checkable() -> None:
    assert isinstance(DummySpreadsheet(), SpreadsheetPort)
    assert not isinstance(DummySpreadsheet(), VideoHostPort)


def test_credential_store_runtime_checkable() -> None:
    assert isinstance(InMemoryCredentialStore(), CredentialStore)
