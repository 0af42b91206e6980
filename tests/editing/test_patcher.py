"""Tests for the file patcher."""

from rustdoc_writer.editing.anchors import source_lines
from rustdoc_writer.editing.patcher import (
    Edit,
    add_leading_blank_if_needed,
    apply_edits,
    indent_like,
    line_starts,
    needs_leading_blank_line,
    patch_file,
    patch_files_with_docs,
)
from rustdoc_writer.errors import PatchIOError
from rustdoc_writer.models import DocResult, ItemKind


def _doc(kind, path, start_line, text, fqpath="crate::item", signature=""):
    return DocResult(
        kind=kind,
        file=str(path),
        start_line=start_line,
        signature=signature,
        doc_text=text,
        fqpath=fqpath,
    )


def _read(path):
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write(path, text):
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


SAMPLE_SRC = """\
use std::fmt;

pub struct Config {
    pub name: String,
    retries: u32,
}

#[inline]
pub fn load() -> Config {
    todo!()
}
fn helper() {}
"""

EXPECTED_SRC = """\
use std::fmt;

/// A config.
pub struct Config {
    /// The name.
    pub name: String,
    /// Retry count.
    retries: u32,
}

/// Loads config.
#[inline]
pub fn load() -> Config {
    todo!()
}

/// Helps.
fn helper() {}
"""


def _sample_items(path):
    return [
        _doc(ItemKind.STRUCT, path, 3, "/// A config.", "crate::Config"),
        _doc(ItemKind.FIELD, path, 4, "/// The name.", "crate::Config::name",
             signature="    pub name: String,"),
        _doc(ItemKind.FIELD, path, 5, "/// Retry count.", "crate::Config::retries",
             signature="    retries: u32,"),
        _doc(ItemKind.FUNCTION, path, 8, "/// Loads config.", "crate::load"),
        _doc(ItemKind.FUNCTION, path, 12, "/// Helps.", "crate::helper"),
    ]


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

class TestApplyEdits:
    def test_replacements_out_of_order(self):
        edits = [Edit(0, 5, "Hi"), Edit(6, 11, "there")]
        assert apply_edits("Hello_world", edits) == "Hi_there"

    def test_invalid_ranges_ignored(self):
        edits = [Edit(3, 2, "X"), Edit(4, 999, "Z"), Edit(1, 3, "bb")]
        assert apply_edits("ABCDE", edits) == "AbbDE"

    def test_single_replacement(self):
        assert apply_edits("abcdef", [Edit(2, 4, "XYZ")]) == "abXYZef"

    def test_out_of_range_edit_skipped(self):
        assert apply_edits("abc", [Edit(2, 10, "X")]) == "abc"


class TestLineStarts:
    def test_trailing_newline(self):
        assert line_starts("a\nbc\n") == [0, 2, 5]

    def test_no_trailing_newline(self):
        assert line_starts("a\nbc") == [0, 2, 4]

    def test_empty(self):
        assert line_starts("") == [0]


class TestIndentLike:
    def test_prefixes_and_indents(self):
        assert indent_like("    fn x() {}", "Line one\n\n/// Line two") == (
            "    /// Line one\n    ///\n    /// Line two\n"
        )

    def test_ends_with_one_newline(self):
        assert indent_like("fn x() {}", "/// Doc\n\n") == "/// Doc\n///\n"

    def test_tabs(self):
        assert indent_like("\tpub x: u8,", "/// Field") == "\t/// Field\n"

    def test_crlf_doc(self):
        assert indent_like("", "/// a\r\n/// b\r\n") == "/// a\n/// b\n"


class TestLeadingBlank:
    def test_needed_after_code(self):
        lines = source_lines("line A\nline B\n")
        assert needs_leading_blank_line(lines, 1)
        assert add_leading_blank_if_needed(lines, 1, "/// x\n") == "\n/// x\n"

    def test_not_needed_after_blank(self):
        lines = source_lines("\nline B\n")
        assert not needs_leading_blank_line(lines, 1)
        assert add_leading_blank_if_needed(lines, 1, "/// x\n") == "/// x\n"

    def test_not_needed_at_top(self):
        assert not needs_leading_blank_line(["fn a() {}"], 0)

    def test_not_needed_below_attribute(self):
        assert not needs_leading_blank_line(["#[inline]", "fn a() {}"], 1)


# ---------------------------------------------------------------------------
# File patching
# ---------------------------------------------------------------------------

class TestPatchFile:
    def test_patches_struct_fields_and_functions(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, SAMPLE_SRC)

        report = patch_file(str(path), _sample_items(path), overwrite=False)

        assert report.ok
        assert report.edits == 5
        assert _read(path) == EXPECTED_SRC

    def test_second_pass_changes_nothing(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, SAMPLE_SRC)
        items = _sample_items(path)
        patch_file(str(path), items, overwrite=False)

        report = patch_file(str(path), items, overwrite=False)

        assert report.edits == 0
        assert report.skipped_existing_doc == 3
        assert report.skipped_no_anchor == 2
        assert _read(path) == EXPECTED_SRC

    def test_overwrite_replaces_existing_block(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "/// Old doc.\n/// More.\npub fn run() {}\n")
        item = _doc(ItemKind.FUNCTION, path, 3, "/// New doc.")

        report = patch_file(str(path), [item], overwrite=True)

        assert report.edits == 1
        assert _read(path) == "/// New doc.\npub fn run() {}\n"

    def test_existing_block_kept_without_overwrite(self, tmp_path):
        path = tmp_path / "lib.rs"
        original = "/// Old doc.\npub fn run() {}\n"
        _write(path, original)

        report = patch_file(str(path), [_doc(ItemKind.FUNCTION, path, 2, "/// New.")], overwrite=False)

        assert report.skipped_existing_doc == 1
        assert _read(path) == original

    def test_replace_below_attribute_stays_attached(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "#[inline]\n/// Old.\nfn run() {}\n")

        patch_file(str(path), [_doc(ItemKind.FUNCTION, path, 3, "/// New.")], overwrite=True)

        assert _read(path) == "#[inline]\n/// New.\nfn run() {}\n"

    def test_method_gets_impl_indentation(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "impl S {\n    pub fn m(&self) {}\n}\n")

        patch_file(str(path), [_doc(ItemKind.FUNCTION, path, 2, "Method.")], overwrite=False)

        assert "    /// Method.\n    pub fn m(&self) {}" in _read(path)

    def test_skip_counters(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "let x = 1;\nfn a() {}\n")
        items = [
            _doc(ItemKind.STRUCT, path, 1, "/// Nothing here."),
            _doc(ItemKind.FUNCTION, path, 2, "   "),
            _doc(ItemKind.FUNCTION, path, None, "/// No line."),
        ]

        report = patch_file(str(path), items, overwrite=False)

        assert report.edits == 0
        assert report.skipped_no_anchor == 1
        assert report.skipped_empty == 1
        assert _read(path) == "let x = 1;\nfn a() {}\n"

    def test_field_doc_goes_above_field_attributes(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "struct S {\n    #[serde(default)]\n    a: u8,\n}\n")
        item = _doc(ItemKind.FIELD, path, 2, "/// A.", signature="    a: u8,")

        report = patch_file(str(path), [item], overwrite=False)

        assert report.edits == 1
        assert _read(path) == "struct S {\n    /// A.\n    #[serde(default)]\n    a: u8,\n}\n"

    def test_field_hint_on_other_field_skipped(self, tmp_path):
        path = tmp_path / "lib.rs"
        original = "struct S {\n    a: u8,\n    b: u8,\n}\n"
        _write(path, original)
        items = [
            _doc(ItemKind.FIELD, path, 2, "/// B.", signature="    b: u8,"),
            _doc(ItemKind.FIELD, path, 1, "/// Not a field."),
        ]

        report = patch_file(str(path), items, overwrite=False)

        assert report.edits == 0
        assert report.skipped_no_anchor == 2
        assert _read(path) == original

    def test_crlf_lines_preserved(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "fn a() {}\r\nfn b() {}\r\n")

        patch_file(str(path), [_doc(ItemKind.FUNCTION, path, 2, "/// B.")], overwrite=False)

        text = _read(path)
        assert text.startswith("fn a() {}\r\n")
        assert text.endswith("/// B.\nfn b() {}\r\n")

    def test_missing_file_reports_error(self, tmp_path):
        path = tmp_path / "missing.rs"

        report = patch_file(str(path), [_doc(ItemKind.FUNCTION, path, 1, "/// x")], overwrite=False)

        assert not report.ok
        assert isinstance(report.error, PatchIOError)
        assert report.error.path == str(path)


class TestPatchFilesWithDocs:
    def test_failure_does_not_stop_other_files(self, tmp_path):
        good = tmp_path / "good.rs"
        _write(good, "fn a() {}\n")
        bad = tmp_path / "nope" / "bad.rs"
        results = [
            _doc(ItemKind.FUNCTION, bad, 1, "/// Bad."),
            _doc(ItemKind.FUNCTION, good, 1, "/// Good."),
        ]

        reports = {r.path: r for r in patch_files_with_docs(results, overwrite=False)}

        assert not reports[str(bad)].ok
        assert reports[str(good)].ok
        assert _read(good) == "/// Good.\nfn a() {}\n"

    def test_summary_line(self, tmp_path):
        path = tmp_path / "lib.rs"
        _write(path, "fn a() {}\n")

        [report] = patch_files_with_docs([_doc(ItemKind.FUNCTION, path, 1, "/// A.")], False)

        assert report.summary() == f"Patched {path}: 1 edits (skipped_no_sig=0, skipped_existing_doc=0)"

    def test_undecodable_file_does_not_stop_other_files(self, tmp_path):
        bad = tmp_path / "a_bad.rs"
        bad.write_bytes(b"fn a() {}\n// \xff\xfe\n")
        good = tmp_path / "b_good.rs"
        _write(good, "fn b() {}\n")
        results = [
            _doc(ItemKind.FUNCTION, bad, 1, "/// Bad."),
            _doc(ItemKind.FUNCTION, good, 1, "/// Good."),
        ]

        reports = {r.path: r for r in patch_files_with_docs(results, overwrite=False)}

        assert not reports[str(bad)].ok
        assert isinstance(reports[str(bad)].error.cause, UnicodeDecodeError)
        assert bad.read_bytes() == b"fn a() {}\n// \xff\xfe\n"
        assert _read(good) == "/// Good.\nfn b() {}\n"
