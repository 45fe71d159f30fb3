"""Tests for download naming and the download interceptor."""

import pytest

from webshell.downloads import (
    DownloadInterceptor,
    DownloadPolicy,
    inherit_extension,
    sanitize_filename,
    unique_path,
)


def touch(path):
    path.write_bytes(b"x")
    return path


# ---------- helpers ----------

def test_unique_path_free_name(tmp_path):
    assert unique_path(tmp_path, "report.pdf") == tmp_path / "report.pdf"


def test_unique_path_collisions(tmp_path):
    touch(tmp_path / "report.pdf")
    assert unique_path(tmp_path, "report.pdf") == tmp_path / "report (1).pdf"
    touch(tmp_path / "report (1).pdf")
    assert unique_path(tmp_path, "report.pdf") == tmp_path / "report (2).pdf"


def test_unique_path_without_extension(tmp_path):
    touch(tmp_path / "README")
    assert unique_path(tmp_path, "README") == tmp_path / "README (1)"


def test_unique_path_gives_up_with_original_name(tmp_path):
    for name in ("a.txt", "a (1).txt", "a (2).txt"):
        touch(tmp_path / name)
    assert unique_path(tmp_path, "a.txt", max_attempts=2) == tmp_path / "a.txt"


@pytest.mark.parametrize("raw, expected", [
    ("report.pdf", "report.pdf"),
    ('a<b>c:d"e/f\\g|h?i*j.txt', "a_b_c_d_e_f_g_h_i_j.txt"),
    ("tab\there.csv", "tab_here.csv"),
    ("  spaced.txt  ", "spaced.txt"),
    ("trailing...", "trailing"),
    ("", "download"),
    (None, "download"),
    ("...", "download"),
    ("CON.txt", "_CON.txt"),
    ("nul", "_nul"),
    ("console.log", "console.log"),
])
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


def test_inherit_extension():
    assert inherit_extension("myfile", "myfile.csv") == "myfile.csv"
    assert inherit_extension("myfile.txt", "myfile.csv") == "myfile.txt"
    assert inherit_extension("other", "README") == "other"


# ---------- interceptor ----------

def test_auto_policy_saves_into_target_directory(tmp_path):
    target = tmp_path / "Downloads"
    icpt = DownloadInterceptor(target, DownloadPolicy.AUTO)
    decision = icpt.decide("/home/user/elsewhere/report.pdf")
    assert not decision.cancelled
    assert decision.path == target / "report.pdf"
    assert target.is_dir()


def test_auto_policy_disambiguates(tmp_path):
    touch(tmp_path / "report.pdf")
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.AUTO)
    assert icpt.decide("report.pdf").path == tmp_path / "report (1).pdf"


def test_auto_policy_sanitizes(tmp_path):
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.AUTO)
    assert icpt.decide("in?voice*.pdf").path == tmp_path / "in_voice_.pdf"


def test_empty_suggestion_gets_fallback_name(tmp_path):
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.AUTO)
    assert icpt.decide("").path == tmp_path / "download"


def test_prompt_prefilled_with_sanitized_name(tmp_path):
    seen = []

    def prompt(name):
        seen.append(name)
        return name

    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT, prompt=prompt)
    assert icpt.decide("a:b.csv").path == tmp_path / "a_b.csv"
    assert seen == ["a_b.csv"]


def test_prompt_inherits_extension(tmp_path):
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT, prompt=lambda name: "myfile")
    assert icpt.decide("myfile.csv").path == tmp_path / "myfile.csv"


def test_prompt_keeps_explicit_extension(tmp_path):
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT, prompt=lambda name: "myfile.txt")
    assert icpt.decide("myfile.csv").path == tmp_path / "myfile.txt"


def test_prompt_name_is_sanitized_and_disambiguated(tmp_path):
    touch(tmp_path / "q_1.csv")
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT, prompt=lambda name: "q/1")
    assert icpt.decide("data.csv").path == tmp_path / "q_1 (1).csv"


@pytest.mark.parametrize("answer", [None, "", "   "])
def test_prompt_cancel_cancels_download(tmp_path, answer):
    icpt = DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT, prompt=lambda name: answer)
    assert icpt.decide("report.pdf").cancelled


def test_unusable_directory_cancels_download(tmp_path):
    blocker = touch(tmp_path / "not-a-dir")
    icpt = DownloadInterceptor(blocker / "sub", DownloadPolicy.AUTO)
    assert icpt.decide("report.pdf").cancelled


def test_prompt_policy_requires_prompt(tmp_path):
    with pytest.raises(ValueError):
        DownloadInterceptor(tmp_path, DownloadPolicy.PROMPT)
