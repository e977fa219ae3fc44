#!/usr/bin/env python3
"""
Integration tests for the CLI interface.
Tests the mix and sync commands against a stubbed engine.
"""

import json
import argparse
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import main
from audiomuse_mix.models.candidate import ResolvedItem
from audiomuse_mix.models.library_item import LibraryItem
from audiomuse_mix.models.mix import MixResult
from audiomuse_mix.models.playlist import SweepResult, SyncOutcome, SyncState

def stub_engine(**methods):
    engine = MagicMock()
    for name, value in methods.items():
        setattr(engine, name, AsyncMock(return_value=value))
    engine.__aenter__ = AsyncMock(return_value=engine)
    engine.__aexit__ = AsyncMock(return_value=False)
    return engine

class TestCLIInterface:
    """Integration tests for the command line interface."""

    @pytest.fixture(autouse=True)
    def token(self, monkeypatch):
        monkeypatch.setenv("JELLYFIN_TOKEN", "test_token")

    def mix_result(self, count: int) -> MixResult:
        items = [
            ResolvedItem(item=LibraryItem(key=f"k{i}", name=f"Song {i}", artists=[f"Artist {i}"]),
                         method="anchor" if i == 0 else "raw_id")
            for i in range(count)
        ]
        return MixResult(root_key="root", items=items, root_name="Root Song", seed_count=1)

    @pytest.mark.asyncio
    async def test_mix_command_writes_output(self, tmp_path, capsys):
        engine = stub_engine(instant_mix=self.mix_result(3))
        output = tmp_path / "mixes" / "mix.json"
        args = argparse.Namespace(item_id="root", user="alice", limit=3, output=str(output))

        with patch.object(main, "MixEngine", return_value=engine):
            exit_code = await main.build_mix(args)

        assert exit_code == 0
        engine.instant_mix.assert_awaited_once_with("root", user_id="alice", limit=3)
        saved = json.loads(output.read_text())
        assert saved["TotalRecordCount"] == 3
        out = capsys.readouterr().out
        assert "Instant Mix: Root Song" in out
        assert "Song 2 - Artist 2" in out

    @pytest.mark.asyncio
    async def test_mix_command_unknown_item(self, capsys):
        engine = stub_engine(instant_mix=MixResult.not_found("nope"))
        args = argparse.Namespace(item_id="nope", user=None, limit=None, output=None)

        with patch.object(main, "MixEngine", return_value=engine):
            exit_code = await main.build_mix(args)

        assert exit_code == 1
        assert "not found" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_mix_command_requires_token(self, monkeypatch, capsys):
        monkeypatch.delenv("JELLYFIN_TOKEN")
        args = argparse.Namespace(item_id="root", user=None, limit=None, output=None)

        assert await main.build_mix(args) == 1
        assert "JELLYFIN_TOKEN" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_sync_command_reports_outcomes(self, capsys):
        sweep = SweepResult(outcomes=[
            SyncOutcome("u1", "alice-fingerprint", SyncState.DONE, created=True, item_count=25),
            SyncOutcome("u2", "bob-fingerprint", SyncState.FAILED, reason="playlist disappeared"),
        ])
        engine = stub_engine(sync_fingerprints=sweep)
        args = argparse.Namespace(users=["alice", "bob"])

        with patch.object(main, "MixEngine", return_value=engine):
            exit_code = await main.sync_fingerprints(args)

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "alice-fingerprint: done (25 tracks, created)" in out
        assert "bob-fingerprint: failed (playlist disappeared)" in out

    def test_skipped_sweep_summary(self, capsys):
        main.display_sweep_summary(SweepResult(skipped=True))
        assert "already running" in capsys.readouterr().out
