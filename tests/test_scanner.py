"""
Controller discovery: tree walking, validation, classification and
action/mixin extraction.
"""

import pytest

from wardline import AdminController, Controller, Reply, RegistrationError
from wardline.controller import (
    ControllerType,
    class_identity,
    extract_actions,
    extract_descriptor,
    extract_mixins,
)
from wardline.registry import ControllerScanner
from wardline.registry.scanner import module_name_for, walk_handler_tree


# ============================================================================
# Classes used by the introspection tests
# ============================================================================

class AuditMixin:
    def audit(self, request, action):
        return "audited"

    # Names declared on core bases stay hidden even when a mixin redefines them.
    def init(self):
        pass


class ProductPage(AuditMixin, Controller):
    handle = "product"

    async def serve(self, request):
        return Reply()

    async def rename(self, request, action):
        return "renamed"

    async def publish(self, request, action):
        return "published"

    def _helper(self):
        pass

    @staticmethod
    def build():
        pass

    @classmethod
    def create(cls):
        pass

    @property
    def title(self):
        return "x"


class SpecialProductPage(ProductPage):
    handle = "special_product"

    async def publish(self, request, action):
        return "special"

    async def archive(self, request, action):
        return "archived"


class SettingsScreen(AdminController, Controller):
    handle = "settings"

    async def serve(self, request):
        return Reply()

    def configure(self):
        return {"title": "Settings"}


# ============================================================================
# Introspection
# ============================================================================

class TestExtraction:

    def test_identity(self):
        assert class_identity(ProductPage) == f"{ProductPage.__module__}:ProductPage"

    def test_actions_exclude_lifecycle_private_and_static(self):
        assert extract_actions(ProductPage) == ["rename", "publish", "audit"]

    def test_inherited_actions_are_deduplicated(self):
        assert extract_actions(SpecialProductPage) == ["publish", "archive", "rename", "audit"]

    def test_configure_is_not_an_action(self):
        assert extract_actions(SettingsScreen) == []

    def test_mixins(self):
        assert extract_mixins(ProductPage) == [class_identity(AuditMixin)]
        assert class_identity(AdminController) in extract_mixins(SettingsScreen)

    def test_classification(self):
        assert extract_descriptor(ProductPage).type is ControllerType.VIEW
        assert extract_descriptor(SettingsScreen).type is ControllerType.ADMIN

    def test_descriptor_records_source(self):
        desc = extract_descriptor(ProductPage)
        assert desc.source_file_path.endswith("test_scanner.py")
        assert desc.source_file_modified_at > 0

    def test_widget_is_never_assigned(self):
        types = {extract_descriptor(cls).type for cls in (ProductPage, SpecialProductPage, SettingsScreen)}
        assert ControllerType.WIDGET not in types


# ============================================================================
# Validation
# ============================================================================

class TestValidation:

    def test_missing_handle(self):
        class NoHandle(Controller):
            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError, match="class-level `handle`"):
            extract_descriptor(NoHandle)

    def test_instance_only_handle(self):
        class InstanceHandle(Controller):
            def __init__(self):
                self.handle = "late"

            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError):
            extract_descriptor(InstanceHandle)

    def test_property_handle(self):
        class PropertyHandle(Controller):
            @property
            def handle(self):
                return "prop"

            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError, match="plain value"):
            extract_descriptor(PropertyHandle)

    def test_empty_handle(self):
        class EmptyHandle(Controller):
            handle = ""

            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError, match="empty"):
            extract_descriptor(EmptyHandle)

    def test_wrong_base(self):
        class Stray:
            handle = "stray"

            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError, match="descend from"):
            extract_descriptor(Stray)

    def test_error_carries_suggestion(self):
        class NoHandle(Controller):
            async def serve(self, request):
                return Reply()

        with pytest.raises(RegistrationError) as exc_info:
            extract_descriptor(NoHandle)
        assert "Suggestion" in exc_info.value.format_error()


# ============================================================================
# Tree scanning
# ============================================================================

class TestTreeScan:

    def test_module_names_follow_paths(self, tmp_path):
        root = tmp_path / "handlers"
        assert module_name_for(root, root / "shop" / "product.py", "handlers") == "handlers.shop.product"

    def test_walk_skips_private_and_hidden(self, handler_tree):
        handler_tree.write("visible.py", "")
        handler_tree.write("_private.py", "")
        handler_tree.write(".hidden/thing.py", "")
        handler_tree.write("nested/deep.py", "")

        names = [p.name for p, is_dir in walk_handler_tree(handler_tree.root) if not is_dir]
        assert names == ["visible.py", "deep.py"]

    def test_scan_standard_tree(self, standard_tree):
        descriptors = ControllerScanner(standard_tree.root).scan()
        by_identity = {d.identity: d for d in descriptors}

        product = by_identity[standard_tree.identity("shop/product.py", "ProductController")]
        assert product.type is ControllerType.VIEW
        assert product.handle == "product"
        assert product.actions == ["rename"]

        assert by_identity[standard_tree.identity("home.py", "HomeController")].type is ControllerType.DEFAULT
        assert by_identity[standard_tree.identity("missing.py", "MissingController")].type is ControllerType.NOT_FOUND
        assert by_identity[standard_tree.identity("landing.py", "LandingPage")].handle == "42"

    def test_imported_classes_are_not_candidates(self, handler_tree):
        handler_tree.write("base.py", '''
            from wardline import Controller, Reply

            class Page(Controller):
                handle = "page_base"

                async def serve(self, request):
                    return Reply()
        ''')
        handler_tree.write("other.py", f'''
            from {handler_tree.package}.base import Page
        ''')
        descriptors = ControllerScanner(handler_tree.root).scan()
        assert [d.identity for d in descriptors] == [handler_tree.identity("base.py", "Page")]

    def test_abstract_classes_are_skipped(self, handler_tree):
        handler_tree.write("abstract.py", '''
            from abc import abstractmethod
            from wardline import Controller

            class Base(Controller):
                handle = "base"

                @abstractmethod
                def render(self):
                    ...
        ''')
        assert ControllerScanner(handler_tree.root).scan() == []

    def test_malformed_controller_fails_immediately(self, handler_tree):
        handler_tree.write("broken.py", '''
            from wardline import Controller, Reply

            class Broken(Controller):
                async def serve(self, request):
                    return Reply()
        ''')
        with pytest.raises(RegistrationError) as exc_info:
            ControllerScanner(handler_tree.root).scan()
        assert exc_info.value.source.endswith("broken.py")

    def test_import_error_is_registration_error(self, handler_tree):
        handler_tree.write("syntax.py", "def broken(:\n")
        with pytest.raises(RegistrationError, match="Failed to load handler module"):
            ControllerScanner(handler_tree.root).scan()

    def test_duplicate_handle_in_one_scan(self, handler_tree):
        for name in ("a.py", "b.py"):
            handler_tree.write(name, '''
                from wardline import Controller, Reply

                class Page(Controller):
                    handle = "same"

                    async def serve(self, request):
                        return Reply()
            ''')
        with pytest.raises(RegistrationError, match="Duplicate view handle 'same'"):
            ControllerScanner(handler_tree.root).scan()

    def test_rescan_picks_up_edits(self, handler_tree):
        handler_tree.write("page.py", '''
            from wardline import Controller, Reply

            class Page(Controller):
                handle = "first"

                async def serve(self, request):
                    return Reply()
        ''')
        assert ControllerScanner(handler_tree.root).scan()[0].handle == "first"

        handler_tree.write("page.py", '''
            from wardline import Controller, Reply

            class Page(Controller):
                handle = "second_edit"

                async def serve(self, request):
                    return Reply()
        ''')
        assert ControllerScanner(handler_tree.root).scan()[0].handle == "second_edit"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(RegistrationError, match="does not exist"):
            ControllerScanner(tmp_path / "nope").scan()


# ============================================================================
# Manifest registration
# ============================================================================

class TestManifest:

    def test_classes_and_strings(self):
        scanner = ControllerScanner.from_manifest([
            ProductPage,
            f"{SettingsScreen.__module__}:SettingsScreen",
        ])
        descriptors = scanner.scan()
        assert [d.handle for d in descriptors] == ["product", "settings"]

    def test_unknown_string_entry(self):
        with pytest.raises(RegistrationError, match="does not exist"):
            ControllerScanner.from_manifest([f"{__name__}:NoSuchController"]).scan()

    def test_non_controller_entry(self):
        with pytest.raises(RegistrationError, match="not a concrete controller"):
            ControllerScanner.from_manifest([AuditMixin]).scan()

    def test_same_class_listed_twice(self):
        descriptors = ControllerScanner.from_manifest([ProductPage, ProductPage]).scan()
        assert len(descriptors) == 1
