"""Minimal C runtime embedded at the top of every generated translation unit.

Strings are NUL-terminated `const char *`. Concatenation allocates with
malloc and never frees; generated programs are short-lived.
"""

INCLUDES = (
    "stdio.h",
    "stdlib.h",
    "stdbool.h",
    "stdint.h",
    "inttypes.h",
    "string.h",
    "math.h",
)

# Print routine per printable type name
PRINT_HELPERS: dict[str, str] = {
    "string": "print",
    "int": "print_int",
    "float": "print_float",
    "bool": "print_bool",
}

# Short operand tags used by the concat_<left>_<right> helpers
CONCAT_TAGS: dict[str, str] = {
    "string": "str",
    "int": "int",
    "float": "float",
    "bool": "bool",
}

CONCAT_HELPERS = frozenset({
    "concat_str_str",
    "concat_str_int",
    "concat_int_str",
    "concat_str_float",
    "concat_float_str",
    "concat_str_bool",
    "concat_bool_str",
})

# Runtime symbols outside the print and concat families
INTERNAL_HELPERS = frozenset({"z_join", "z_memdup"})

RUNTIME_NAMES = frozenset(PRINT_HELPERS.values()) | CONCAT_HELPERS | INTERNAL_HELPERS

_RUNTIME_BODY = r"""
// Z language runtime

static void print(const char *message) {
    printf("%s\n", message);
}

static void print_int(int64_t value) {
    printf("%" PRId64 "\n", value);
}

static void print_float(double value) {
    printf("%f\n", value);
}

static void print_bool(bool value) {
    printf("%s\n", value ? "true" : "false");
}

static const char *z_join(const char *left, const char *right) {
    size_t left_len = strlen(left);
    size_t right_len = strlen(right);
    char *result = malloc(left_len + right_len + 1);
    if (result == NULL) {
        fputs("z: out of memory\n", stderr);
        exit(1);
    }
    memcpy(result, left, left_len);
    memcpy(result + left_len, right, right_len + 1);
    return result;
}

static const char *concat_str_str(const char *left, const char *right) {
    return z_join(left, right);
}

static const char *concat_str_int(const char *str, int64_t num) {
    char buffer[32];
    snprintf(buffer, sizeof buffer, "%" PRId64, num);
    return z_join(str, buffer);
}

static const char *concat_int_str(int64_t num, const char *str) {
    char buffer[32];
    snprintf(buffer, sizeof buffer, "%" PRId64, num);
    return z_join(buffer, str);
}

static const char *concat_str_float(const char *str, double num) {
    char buffer[64];
    snprintf(buffer, sizeof buffer, "%f", num);
    return z_join(str, buffer);
}

static const char *concat_float_str(double num, const char *str) {
    char buffer[64];
    snprintf(buffer, sizeof buffer, "%f", num);
    return z_join(buffer, str);
}

static const char *concat_str_bool(const char *str, bool value) {
    return z_join(str, value ? "true" : "false");
}

static const char *concat_bool_str(bool value, const char *str) {
    return z_join(value ? "true" : "false", str);
}

static void *z_memdup(const void *src, size_t size) {
    void *copy = malloc(size > 0 ? size : 1);
    if (copy == NULL) {
        fputs("z: out of memory\n", stderr);
        exit(1);
    }
    if (size > 0) {
        memcpy(copy, src, size);
    }
    return copy;
}
"""

RUNTIME_PREAMBLE = "".join(f"#include <{h}>\n" for h in INCLUDES) + _RUNTIME_BODY


def concat_helper(left: str, right: str) -> str:
    """Name of the helper concatenating operands of the given type names."""
    name = f"concat_{CONCAT_TAGS[left]}_{CONCAT_TAGS[right]}"
    if name not in CONCAT_HELPERS:
        raise KeyError(f"no concatenation helper for {left} + {right}")
    return name
