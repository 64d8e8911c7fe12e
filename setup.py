"""Packaging setup with an optional Cython build of the package."""

import logging
import os
import sys
from pathlib import Path

from setuptools import Extension, find_packages, setup
from setuptools.command.build_ext import build_ext


LOGGER = logging.getLogger(__name__)

# Accept several truthy values for CYTHONIZE (so "True", True, "1", "true" all work)
CYTHONIZE_RAW = os.getenv("CYTHONIZE", "0")
CYTHONIZE = str(CYTHONIZE_RAW).strip().lower() in ("1", "true", "yes", "on")

if CYTHONIZE:
    from Cython.Build import cythonize


class ClangBuildExt(build_ext):
    """Under Windows, swap MSVC's cl.exe for clang-cl when compiling."""

    def build_extension(self, ext: Extension) -> None:
        """Build extension with clang-cl overrides on Windows."""
        if self.compiler.compiler_type == "msvc":
            original_spawn = self.compiler.spawn

            def clang_spawn(cmd: list[str]) -> object:
                if cmd and Path(cmd[0].strip('"')).name.lower() in {"cl.exe", "cl"}:
                    cmd[0] = "clang-cl"
                    LOGGER.debug("Using clang-cl compiler: %s", " ".join(cmd))
                return original_spawn(cmd)

            self.compiler.spawn = clang_spawn
            if hasattr(self.compiler, "cc"):
                self.compiler.cc = "clang-cl"

        super().build_extension(ext)


dist_name = "SteadyBox"
package_dir = "steadybox"
version = Path("VERSION.txt").read_text().strip()

install_requires = [
    "numpy>=1.24",
    "opencv-python>=4.8",
    "loguru>=0.7",
    "onnxruntime>=1.16",
]

extras_require = {
    "test": ["pytest>=7.4", "pytest-benchmark>=4.0"],
    "gpu": ["onnxruntime-gpu>=1.16"],
    "cython": ["Cython>=3.0"],
}


def list_py_files(package_dir: str | Path) -> list[str]:
    """Return Python source files under the package directory."""
    root = Path(package_dir)
    return [str(path) for path in root.rglob("*.py") if path.name != "__init__.py"]


setup_kwargs = {
    "name": dist_name,
    "version": version,
    "description": "Low-flicker object detection overlay for live video",
    "python_requires": ">=3.10",
    "install_requires": install_requires,
    "extras_require": extras_require,
    "packages": find_packages(include=[package_dir, f"{package_dir}.*"]),
    "entry_points": {"console_scripts": ["steadybox=steadybox.app:main"]},
    "zip_safe": False,
}

if CYTHONIZE:
    if sys.platform == "win32":
        extra_compile_args = ["/O2", "/MD"]
        extra_link_args = ["/OPT:REF", "/OPT:ICF", "/LTCG:OFF"]
    else:
        extra_compile_args = ["-O3", "-fvisibility=hidden"]
        extra_link_args = []

    extensions = [
        Extension(
            py_file.replace(os.path.sep, ".")[:-3],
            [py_file],
            extra_compile_args=extra_compile_args,
            extra_link_args=extra_link_args,
        )
        for py_file in list_py_files(package_dir)
    ]
    setup_kwargs.update(
        {
            "ext_modules": cythonize(
                extensions,
                compiler_directives={
                    "language_level": "3",
                    "emit_code_comments": False,
                    "binding": True,
                    "embedsignature": True,
                },
            ),
            "cmdclass": {"build_ext": ClangBuildExt},
        }
    )

setup(**setup_kwargs)
