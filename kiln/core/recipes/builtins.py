from __future__ import annotations

from .models import Recipe, Step


def builtin_recipes() -> list[Recipe]:
    return [
        Recipe(
            name="build",
            description="Release build: manylinux wheels + sdist in a container, then a Windows cross build",
            uses_venv=True,
            steps=[
                Step(kind="clean", argv=["{wheels_dir}"], description="clear previous artifacts"),
                Step(
                    kind="container",
                    image="{maturin_image}",
                    argv=["build", "--release", "--sdist"],
                    description="portable linux build",
                ),
                Step(
                    argv=["{venv_bin}/maturin", "build", "--release", "--target", "{windows_target}"],
                    description="windows cross build",
                ),
            ],
        ),
        Recipe(
            name="upload",
            description="Publish artifacts to the production index",
            uses_venv=True,
            uses_artifacts=True,
            requires_network=True,
            index="production",
            steps=[Step(argv=["{venv_bin}/maturin", "upload", "{wheels_dir}/*"])],
        ),
        Recipe(
            name="upload-test",
            description="Publish artifacts to the staging index",
            uses_artifacts=True,
            requires_network=True,
            index="staging",
            steps=[
                Step(
                    argv=[
                        "{system_python}",
                        "-m",
                        "twine",
                        "upload",
                        "--repository",
                        "{test_repository}",
                        "{wheels_dir}/*",
                    ]
                )
            ],
        ),
        Recipe(
            name="debug",
            description="Run the local debug script with the venv interpreter",
            uses_venv=True,
            requires_files=["{debug_script}"],
            steps=[Step(argv=["{venv_bin}/python", "{debug_script}"])],
        ),
        Recipe(
            name="develop",
            description="Install the extension into the venv in development mode",
            uses_venv=True,
            steps=[Step(argv=["{venv_bin}/maturin", "develop"])],
        ),
        Recipe(
            name="venv",
            description="Create the virtualenv and install maturin into it",
            steps=[
                Step(argv=["{system_python}", "-m", "venv", "{venv_dir}"]),
                Step(argv=["{venv_bin}/pip", "install", "maturin"]),
            ],
        ),
    ]
