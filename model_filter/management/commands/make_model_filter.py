import os
from importlib import import_module, resources

import humps
from django.apps import apps
from django.core.management.base import BaseCommand, CommandError
from django.template import Context, Engine

from model_filter.settings import get_settings

FILTER_SUFFIX = "Filter"


class Command(BaseCommand):
    help = "Create a new model filter class in the configured filter namespace."

    def add_arguments(self, parser):
        parser.add_argument("name", help="Filter name (e.g. UserFilter or User).")
        parser.add_argument(
            "-m",
            "--model",
            dest="model",
            help="Model label (app_label.ModelName) the filter is written for.",
        )
        parser.add_argument(
            "--directory",
            dest="directory",
            help="Target package directory (default: derived from MODEL_FILTER['NAMESPACE']).",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite an existing filter module.",
        )

    def handle(self, *args, **options):
        class_name = options["name"]
        if not class_name.isidentifier():
            raise CommandError(f"'{class_name}' is not a valid class name.")
        if not class_name.endswith(FILTER_SUFFIX):
            class_name += FILTER_SUFFIX

        model_label = options.get("model")
        if model_label:
            try:
                model_label = apps.get_model(model_label)._meta.label
            except (LookupError, ValueError) as exc:
                raise CommandError(f"Unknown model '{model_label}': {exc}") from exc

        directory = options.get("directory") or self._namespace_directory()
        module_name = humps.decamelize(class_name)
        file_path = os.path.join(directory, f"{module_name}.py")

        if os.path.exists(file_path) and not options["force"]:
            raise CommandError(f"Filter [{class_name}] already exists: {file_path}")

        os.makedirs(directory, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self._render(class_name, model_label))
        self._export(directory, module_name, class_name)

        self.stdout.write(self.style.SUCCESS(f"Filter [{class_name}] created successfully."))
        self.stdout.write(f"File: {file_path}")

    def _namespace_directory(self) -> str:
        namespace = get_settings().namespace
        if not namespace:
            raise CommandError("MODEL_FILTER['NAMESPACE'] is empty; pass --directory.")
        try:
            module = import_module(namespace)
        except ImportError:
            return os.path.join(os.getcwd(), *namespace.split("."))
        module_file = getattr(module, "__file__", None)
        if not module_file or not module_file.endswith("__init__.py"):
            raise CommandError(f"Filter namespace '{namespace}' is not a package; pass --directory.")
        return os.path.dirname(module_file)

    def _render(self, class_name: str, model_label) -> str:
        template = resources.files("model_filter").joinpath("scaffolding", "model_filter.py-tpl")
        source = template.read_text(encoding="utf-8")
        context = Context({"class_name": class_name, "model_label": model_label}, autoescape=False)
        return Engine().from_string(source).render(context)

    def _export(self, directory: str, module_name: str, class_name: str) -> None:
        """Re-export the class from the package so namespace lookup finds it."""
        init_path = os.path.join(directory, "__init__.py")
        line = f"from .{module_name} import {class_name}  # noqa: F401\n"
        existing = ""
        if os.path.exists(init_path):
            with open(init_path, "r", encoding="utf-8") as f:
                existing = f.read()
        if line in existing:
            return
        with open(init_path, "a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(line)
