from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from objc_bindgen_core.assembler import (  # noqa: E402
    assemble,
    assemble_headers,
    clean_enum_value,
    is_constant,
    merge_categories,
    safe_identifier,
    split_block_signature,
    strip_enum_prefix,
)
from objc_bindgen_core.bindings import Declaration  # noqa: E402
from objc_bindgen_core.model import Function  # noqa: E402
from objc_bindgen_core.parser import parse_header  # noqa: E402


def assemble_text(text: str, filename: str = "Test.h") -> list[Declaration]:
    return assemble(parse_header(text, filename))


def declaration(declarations: list[Declaration], name: str) -> Declaration:
    for item in declarations:
        if item.name == name:
            return item
    raise AssertionError(f"declaration {name} not found in {[item.name for item in declarations]}")


class CategoryMergeTests(unittest.TestCase):
    def test_same_file_category_is_folded(self) -> None:
        header = parse_header(
            "@interface Foo : NSObject\n- (void)a;\n@end\n"
            "@interface Foo (Extras) <Bar>\n- (void)b;\n+ (void)c;\n@end\n"
        )
        merge_categories([header])
        self.assertEqual(len(header.interfaces), 1)
        foo = header.interfaces[0]
        self.assertEqual([m.selector for m in foo.instance_methods], ["a", "b"])
        self.assertEqual([m.selector for m in foo.class_methods], ["c"])
        self.assertEqual(foo.protocols, ["Bar"])

    def test_cross_file_category_is_folded(self) -> None:
        primary = parse_header("@interface Foo : NSObject\n@end\n", "Foo.h")
        extension = parse_header("@interface Foo (Loading)\n- (void)load;\n@end\n", "Foo+Loading.h")
        results = assemble_headers([primary, extension])
        self.assertEqual(extension.interfaces, [])
        self.assertEqual(results[1], [])
        foo = declaration(results[0], "Foo")
        self.assertIsNotNone(foo.member("Load", "method"))

    def test_unresolved_category_is_emitted_as_category(self) -> None:
        result = assemble_text("@interface UIView (PSPDF)\n- (void)pspdf_flash;\n@end\n")
        category = declaration(result, "UIView_PSPDF")
        self.assertEqual(category.kind, "category")
        self.assertTrue(category.has_attribute("Category"))
        self.assertEqual(category.attribute("BaseType").args, ["typeof (UIView)"])

    def test_unresolved_class_extension_name(self) -> None:
        result = assemble_text("@interface Foo ()\n- (void)run;\n@end\n")
        self.assertEqual(result[0].name, "Foo_Extension")


class ProtocolAssemblyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.proto = assemble_text(
            "@protocol Doc <NSObject, Named>\n"
            "- (void)documentControllerDidSave:(id)controller;\n"
            "@property (nonatomic, readonly) NSInteger count;\n"
            "@property (nonatomic, getter=isActive) BOOL active;\n"
            "@optional\n"
            "@property (nonatomic, copy, nullable) NSString *title;\n"
            "@property (nonatomic, readonly) NSUInteger total;\n"
            "- (void)loadWithCompletion:(void (^)(void))completion;\n"
            "@end\n"
        )[0]

    def test_protocol_attributes_and_bases(self) -> None:
        self.assertEqual(self.proto.kind, "protocol")
        self.assertTrue(self.proto.has_attribute("Protocol"))
        self.assertEqual(self.proto.attribute("BaseType").args, ["typeof (NSObject)"])
        self.assertEqual(self.proto.bases, ["INamed"])

    def test_required_members_are_abstract(self) -> None:
        method = self.proto.member("DidSave", "method")
        self.assertTrue(method.has_attribute("Abstract"))
        count = self.proto.member("Count", "property")
        self.assertTrue(count.has_attribute("Abstract"))
        self.assertIsNone(count.accessor("set"))
        active = self.proto.member("Active", "property")
        self.assertEqual(active.accessor("get").attributes[0].args, ['"isActive"'])
        self.assertIsNotNone(active.accessor("set"))

    def test_optional_properties_are_decomposed(self) -> None:
        getter = self.proto.member("Title", "method")
        self.assertEqual(getter.type, "string")
        self.assertTrue(getter.has_attribute("NullAllowed", "return"))
        self.assertEqual(getter.export_selector, "title")
        setter = self.proto.member("SetTitle", "method")
        self.assertEqual(setter.attribute("Export").args, ['"setTitle:"', "ArgumentSemantic.Copy"])
        self.assertEqual(setter.parameters[0].name, "value")
        self.assertTrue(setter.parameters[0].is_nullable)
        self.assertIsNotNone(self.proto.member("Total", "method"))
        self.assertIsNone(self.proto.member("SetTotal"))

    def test_optional_setter_uses_conventional_selector(self) -> None:
        proto = assemble_text(
            "@protocol Editor\n@optional\n@property (nonatomic, setter=updateFoo:) NSInteger foo;\n@end\n"
        )[0]
        setter = proto.member("SetFoo", "method")
        self.assertEqual(setter.attribute("Export").args, ['"setFoo:"'])

    def test_optional_methods_are_not_abstract_or_async(self) -> None:
        load = self.proto.member("Load", "method")
        self.assertFalse(load.has_attribute("Abstract"))
        self.assertFalse(load.has_attribute("Async"))

    def test_member_order(self) -> None:
        self.assertEqual(
            [member.name for member in self.proto.members],
            ["DidSave", "Count", "Active", "Title", "SetTitle", "Total", "Load"],
        )


class InterfaceAssemblyTests(unittest.TestCase):
    def test_base_type_and_protocol_bases(self) -> None:
        foo = assemble_text("@interface Foo : NSObject <Bar, Baz>\n@end\n")[0]
        self.assertEqual(foo.attribute("BaseType").args, ["typeof (NSObject)"])
        self.assertEqual(foo.bases, ["IBar", "IBaz"])

    def test_nullability_outside_nonnull_scope(self) -> None:
        foo = assemble_text(
            "@interface Foo : NSObject\n"
            "- (void)updateName:(NSString *)name count:(NSInteger)count;\n"
            "- (NSString *)name;\n"
            "- (NSInteger)count;\n"
            "@end\n"
        )[0]
        update = foo.member("UpdateName")
        self.assertEqual([p.is_nullable for p in update.parameters], [True, False])
        self.assertTrue(foo.member("Name").has_attribute("NullAllowed", "return"))
        self.assertFalse(foo.member("Count").has_attribute("NullAllowed", "return"))

    def test_nullability_inside_nonnull_scope(self) -> None:
        foo = assemble_text(
            "NS_ASSUME_NONNULL_BEGIN\n"
            "@interface Foo : NSObject\n"
            "- (BOOL)validateName:(NSString *)name other:(nullable NSString *)other error:(NSError **)error;\n"
            "- (nullable NSString *)title;\n"
            "- (NSString *)name;\n"
            "@end\n"
            "NS_ASSUME_NONNULL_END\n"
        )[0]
        use = foo.member("ValidateName")
        self.assertEqual([p.is_nullable for p in use.parameters], [False, True, True])
        self.assertEqual(use.parameters[2].type, "out NSError")
        self.assertTrue(foo.member("Title").has_attribute("NullAllowed", "return"))
        self.assertFalse(foo.member("Name").has_attribute("NullAllowed", "return"))

    def test_property_semantics(self) -> None:
        foo = assemble_text(
            "typedef NS_ENUM(NSInteger, Mode) { ModeA };\n"
            "NS_ASSUME_NONNULL_BEGIN\n"
            "@interface Foo : NSObject\n"
            "@property (nonatomic, weak) id<FooDelegate> delegate;\n"
            "@property (nonatomic, copy) NSString *name;\n"
            "@property (nonatomic) Mode mode;\n"
            "@property (nonatomic, getter=isEnabled) BOOL enabled;\n"
            "@property (class, nonatomic, readonly) Foo *shared;\n"
            "@end\n"
            "NS_ASSUME_NONNULL_END\n"
        )
        foo = declaration(foo, "Foo")
        delegate = foo.member("Delegate", "property")
        self.assertEqual(delegate.type, "IFooDelegate")
        self.assertTrue(delegate.has_attribute("NullAllowed"))
        self.assertEqual(delegate.attribute("Export").args, ['"delegate"', "ArgumentSemantic.Weak"])
        name = foo.member("Name", "property")
        self.assertFalse(name.has_attribute("NullAllowed"))
        self.assertEqual(name.attribute("Export").args, ['"name"', "ArgumentSemantic.Copy"])
        mode = foo.member("Mode", "property")
        self.assertEqual(mode.attribute("Export").args, ['"mode"', "ArgumentSemantic.Assign"])
        enabled = foo.member("Enabled", "property")
        self.assertEqual(enabled.accessor("get").attributes[0].render(), '[Bind ("isEnabled")]')
        shared = foo.member("Shared", "property")
        self.assertTrue(shared.has_attribute("Static"))
        self.assertEqual(shared.type, "Foo")

    def test_constructors_and_factories(self) -> None:
        doc = assemble_text(
            "@interface Doc : NSObject\n"
            "- (instancetype)initWithURL:(NSURL *)url NS_DESIGNATED_INITIALIZER;\n"
            "+ (instancetype)documentWithURL:(NSURL *)url;\n"
            "@end\n"
        )[0]
        ctor = doc.member("Constructor", "constructor")
        self.assertEqual(ctor.type, "NativeHandle")
        self.assertEqual([attr.name for attr in ctor.attributes], ["DesignatedInitializer", "Export"])
        self.assertEqual(ctor.parameters[0].type, "NSUrl")
        factory = doc.member("CreateDocument", "method")
        self.assertTrue(factory.has_attribute("Static"))
        self.assertEqual(factory.type, "Doc")

    def test_init_unavailable_disables_default_ctor(self) -> None:
        foo = assemble_text(
            "@interface Foo : NSObject\n"
            "PSPDF_EMPTY_INIT_UNAVAILABLE\n"
            "- (instancetype)init;\n"
            "+ (instancetype)new;\n"
            "- (void)run;\n"
            "@end\n"
        )[0]
        self.assertTrue(foo.has_attribute("DisableDefaultCtor"))
        self.assertEqual([member.name for member in foo.members], ["Run"])

    def test_async_for_completion_methods(self) -> None:
        foo = assemble_text(
            "@interface Foo : NSObject\n"
            "- (void)loadDocumentWithCompletion:(void (^)(BOOL success))completion;\n"
            "- (void)setCompletionHandler:(void (^)(void))handler;\n"
            "- (void)performAction:(void (^)(void))action;\n"
            "@end\n"
        )[0]
        self.assertTrue(foo.member("LoadDocument").has_attribute("Async"))
        self.assertFalse(foo.member("SetCompletionHandler").has_attribute("Async"))
        self.assertFalse(foo.member("PerformAction").has_attribute("Async"))

    def test_unsafe_and_keyword_parameters(self) -> None:
        foo = assemble_text(
            "@interface Foo : NSObject\n"
            "- (void)fill:(int *)buffer;\n"
            "- (void)storeObject:(id)item forKey:(NSString *)string;\n"
            "- (void)touch:(int);\n"
            "@end\n"
        )[0]
        fill = foo.member("Fill")
        self.assertTrue(fill.is_unsafe)
        self.assertEqual(fill.parameters[0].type, "int*")
        self.assertEqual([p.name for p in foo.member("StoreObject").parameters], ["item", "@string"])
        self.assertEqual(foo.member("Touch").parameters[0].name, "arg0")


class EnumAssemblyTests(unittest.TestCase):
    def test_native_enum_prefix_stripping(self) -> None:
        enum = assemble_text("typedef NS_ENUM(NSInteger, Status) { StatusOK = 0, StatusFail };")[0]
        self.assertEqual(enum.kind, "enum")
        self.assertEqual(enum.backing_type, "long")
        self.assertTrue(enum.has_attribute("Native"))
        self.assertFalse(enum.has_attribute("Flags"))
        self.assertEqual([(m.name, m.value) for m in enum.members], [("OK", "0"), ("Fail", None)])

    def test_options_enum_values(self) -> None:
        enum = assemble_text("typedef NS_OPTIONS(uint8_t, Opts) { OptsA = 1 << 0, OptsAll = OptsA | UINT8_MAX };")[0]
        self.assertTrue(enum.has_attribute("Flags"))
        self.assertFalse(enum.has_attribute("Native"))
        self.assertEqual(enum.backing_type, "byte")
        self.assertEqual([m.value for m in enum.members], ["1 << 0", "A | byte.MaxValue"])

    def test_anonymous_enums_are_numbered(self) -> None:
        result = assemble_text("enum { FooA = 1 };\nenum { BarB };\n")
        self.assertEqual([item.name for item in result], ["AnonymousEnum", "AnonymousEnum2"])
        self.assertEqual(result[0].backing_type, "uint")

    def test_prefix_helpers(self) -> None:
        self.assertEqual(strip_enum_prefix("StatusOK", "Status"), "OK")
        self.assertEqual(strip_enum_prefix("Statusbar", "Status"), "Statusbar")
        self.assertEqual(strip_enum_prefix("Status_Done", "Status"), "Done")
        self.assertEqual(clean_enum_value("1 < < 2", {}), "1 << 2")
        self.assertEqual(clean_enum_value("NSIntegerMax", {}), "long.MaxValue")


class CDeclarationTests(unittest.TestCase):
    def test_constants_and_functions(self) -> None:
        result = assemble_text(
            "FOUNDATION_EXPORT NSString *const PSPDFDocumentDidSaveNotification;\n"
            "FOUNDATION_EXPORT const CGFloat PSPDFDefaultZoom;\n"
            "extern void PSPDFLog(NSString *format, ...);\n"
            "static inline int Half(int v) { return v / 2; }\n"
        )
        self.assertEqual([item.kind for item in result], ["functions", "constants"])
        functions = declaration(result, "CFunctions")
        log = functions.member("PSPDFLog", "function")
        self.assertEqual(log.attribute("DllImport").args, ['"__Internal"'])
        self.assertEqual([(p.name, p.type) for p in log.parameters], [("format", "string"), ("varArgs", "IntPtr")])
        self.assertIsNone(functions.member("Half"))

        constants = declaration(result, "Constants")
        self.assertTrue(constants.has_attribute("Static"))
        notification = constants.member("PSPDFDocumentDidSaveNotification")
        self.assertEqual(notification.type, "NSString")
        self.assertTrue(notification.has_attribute("Notification"))
        self.assertEqual(notification.attribute("Field").args, ['"PSPDFDocumentDidSaveNotification"', '"__Internal"'])
        zoom = constants.member("PSPDFDefaultZoom")
        self.assertEqual(zoom.type, "nfloat")
        self.assertFalse(zoom.has_attribute("Notification"))

    def test_is_constant(self) -> None:
        self.assertTrue(is_constant(Function(name="A", return_type="int", has_parameter_list=False)))
        self.assertTrue(is_constant(Function(name="B", return_type="NSString * const")))
        self.assertFalse(is_constant(Function(name="C", return_type="void")))

    def test_struct_fields(self) -> None:
        struct = assemble_text(
            "typedef struct {\n"
            "  char name[16];\n"
            "  float m[4][4];\n"
            "  BOOL flag;\n"
            "  NSString *label;\n"
            "  int tail[];\n"
            "} Rec;\n"
        )[0]
        self.assertEqual(struct.kind, "struct")
        self.assertEqual(struct.attribute("StructLayout").args, ["LayoutKind.Sequential"])
        name = struct.member("name")
        self.assertEqual(name.type, "sbyte[]")
        self.assertEqual(name.attribute("MarshalAs").args, ["UnmanagedType.ByValArray", "SizeConst = 16"])
        self.assertEqual(struct.member("m").attribute("MarshalAs").args[1], "SizeConst = 4 * 4")
        self.assertEqual(struct.member("flag").attribute("MarshalAs").args, ["UnmanagedType.I1"])
        self.assertEqual(struct.member("label").type, "IntPtr")
        self.assertEqual(struct.member("tail").type, "IntPtr")

    def test_block_typedefs_become_delegates(self) -> None:
        result = assemble_text(
            "typedef void (^DoneBlock)(NSError *error);\n"
            "@interface Foo : NSObject\n"
            "- (void)saveWithCompletionHandler:(DoneBlock)handler;\n"
            "@end\n"
        )
        self.assertEqual([item.kind for item in result], ["interface", "delegate"])
        save = result[0].member("Save")
        self.assertTrue(save.has_attribute("Async"))
        self.assertEqual(save.parameters[0].type, "DoneHandler")
        handler = result[1]
        self.assertEqual(handler.name, "DoneHandler")
        self.assertEqual(handler.return_type, "void")
        self.assertEqual([(p.name, p.type) for p in handler.parameters], [("error", "NSError")])

    def test_block_signature_split(self) -> None:
        self.assertEqual(split_block_signature("void (^)(void)"), ("void", []))
        self.assertEqual(
            split_block_signature("BOOL (^)(NSDictionary<NSString *, id> * dict, int)"),
            ("BOOL", ["NSDictionary<NSString *, id> * dict", "int"]),
        )

    def test_declaration_order(self) -> None:
        result = assemble_text(
            "typedef void (^DoneBlock)(void);\n"
            "@interface Foo : NSObject\n@end\n"
            "@protocol Bar\n@end\n"
            "FOUNDATION_EXPORT NSString *const Key;\n"
            "extern void Reset(void);\n"
            "struct Pair { int a; };\n"
            "typedef NS_ENUM(NSInteger, Mode) { ModeA };\n"
        )
        self.assertEqual(
            [item.kind for item in result],
            ["enum", "struct", "functions", "constants", "protocol", "interface", "delegate"],
        )

    def test_safe_identifier(self) -> None:
        self.assertEqual(safe_identifier("object"), "@object")
        self.assertEqual(safe_identifier("value"), "value")


if __name__ == "__main__":
    unittest.main()
