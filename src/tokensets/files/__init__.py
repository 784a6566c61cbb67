# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Reading and writing the multi-file token tree."""

from tokensets.files.structure import (
    DEFAULT_MAX_PATH_LENGTH,
    DEFAULT_THEME_ID,
    DEFAULT_THEME_NAME,
    MAX_COMPONENT_LENGTH,
    StructureError,
    TreeScan,
    atomic_write_text,
    check_path_length,
    default_theme,
    dump_json,
    init_modular_tree,
    list_set_files,
    os_error_issue,
    read_json_file,
    read_modular_tree,
    scan_modular_tree,
    set_file_path,
    write_json,
    write_modular_tree,
)

__all__ = [
    "DEFAULT_MAX_PATH_LENGTH",
    "DEFAULT_THEME_ID",
    "DEFAULT_THEME_NAME",
    "MAX_COMPONENT_LENGTH",
    "StructureError",
    "TreeScan",
    "atomic_write_text",
    "check_path_length",
    "default_theme",
    "dump_json",
    "init_modular_tree",
    "list_set_files",
    "os_error_issue",
    "read_json_file",
    "read_modular_tree",
    "scan_modular_tree",
    "set_file_path",
    "write_json",
    "write_modular_tree",
]
