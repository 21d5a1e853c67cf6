from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from objc_bindgen_core.assembler import assemble  # noqa: E402
from objc_bindgen_core.bindings import Attribute  # noqa: E402
from objc_bindgen_core.parser import parse_header  # noqa: E402
from objc_bindgen_core.render import collect_usings, render_attribute_lines, render_csharp  # noqa: E402


def generate(text: str, filename: str = "", namespace: str = "Bindings") -> str:
    header = parse_header(text, filename)
    return render_csharp(
        assemble(header),
        source_name=filename,
        namespace=namespace,
        forward_declarations=header.forward_declarations,
    )


class RenderDocumentTests(unittest.TestCase):
    def test_enum_document(self) -> None:
        output = generate("typedef NS_ENUM(NSInteger, Status) { StatusOK = 0, StatusFail };", "Status.h")
        self.assertEqual(
            output,
            "// <auto-generated />\n"
            "// Generated by objc_bindgen from Status.h\n"
            "using Foundation;\n"
            "using ObjCRuntime;\n"
            "\n"
            "namespace Bindings;\n"
            "\n"
            "[Native]\n"
            "public enum Status : long\n"
            "{\n"
            "    OK = 0,\n"
            "    Fail,\n"
            "}\n",
        )

    def test_protocol_document(self) -> None:
        output = generate("@protocol Foo\n- (void)doIt;\n@optional\n- (void)maybe;\n@end\n")
        expected = (
            "// @protocol Foo\n"
            "[Protocol]\n"
            "[BaseType (typeof (NSObject))]\n"
            "interface Foo\n"
            "{\n"
            "    // @required - (void)doIt;\n"
            "    [Abstract]\n"
            "    [Export (\"doIt\")]\n"
            "    void DoIt ();\n"
            "\n"
            "    // @optional - (void)maybe;\n"
            "    [Export (\"maybe\")]\n"
            "    void Maybe ();\n"
            "}\n"
        )
        self.assertTrue(output.endswith(expected), output)
        self.assertNotIn("// Generated by", output)

    def test_namespace_can_be_omitted(self) -> None:
        output = generate("@interface Foo : NSObject\n@end\n", namespace="")
        self.assertNotIn("namespace", output)
        self.assertIn("[BaseType (typeof (NSObject))]\ninterface Foo\n{\n}\n", output)


class RenderMemberTests(unittest.TestCase):
    def test_interface_members(self) -> None:
        output = generate(
            "@interface Foo : NSObject\n"
            "@property (nonatomic, copy, nullable) NSString *title;\n"
            "@property (nonatomic, getter=isEnabled) BOOL enabled;\n"
            "- (void)updateName:(nullable NSString *)name count:(NSInteger)count;\n"
            "- (NSString *)label;\n"
            "- (void)fill:(int *)buffer;\n"
            "@end\n"
        )
        lines = output.splitlines()
        self.assertIn('    [NullAllowed, Export ("title", ArgumentSemantic.Copy)]', lines)
        self.assertIn("    string Title { get; set; }", lines)
        self.assertIn('    bool Enabled { [Bind ("isEnabled")] get; set; }', lines)
        self.assertIn('    [Export ("updateName:count:")]', lines)
        self.assertIn("    void UpdateName ([NullAllowed] string name, nint count);", lines)
        self.assertIn("    [return: NullAllowed]", lines)
        self.assertIn("    string Label ();", lines)
        self.assertIn("    unsafe void Fill (int* buffer);", lines)
        self.assertIn("    // - (void)fill:(int *)buffer;", lines)

    def test_constructor(self) -> None:
        output = generate(
            "NS_ASSUME_NONNULL_BEGIN\n"
            "@interface Doc : NSObject\n"
            "- (instancetype)initWithURL:(NSURL *)url NS_DESIGNATED_INITIALIZER;\n"
            "@end\n"
            "NS_ASSUME_NONNULL_END\n"
        )
        self.assertIn("using ObjCRuntime;", output)
        self.assertIn(
            '    [DesignatedInitializer]\n    [Export ("initWithURL:")]\n    NativeHandle Constructor (NSUrl url);\n',
            output,
        )

    def test_functions_and_constants(self) -> None:
        output = generate(
            "extern void PSPDFLog(NSString *format, ...);\n"
            "FOUNDATION_EXPORT NSString *const PSPDFKey;\n"
        )
        self.assertIn(
            "static class CFunctions\n"
            "{\n"
            "    // extern void PSPDFLog (NSString * format, ...);\n"
            '    [DllImport ("__Internal")]\n'
            "    static extern void PSPDFLog (string format, IntPtr varArgs);\n"
            "}\n",
            output,
        )
        self.assertIn(
            "[Static]\n"
            "partial interface Constants\n"
            "{\n"
            "    // extern NSString * const PSPDFKey;\n"
            '    [Field ("PSPDFKey", "__Internal")]\n'
            "    NSString PSPDFKey { get; }\n"
            "}\n",
            output,
        )
        for using in ("Foundation", "ObjCRuntime", "System", "System.Runtime.InteropServices"):
            self.assertIn(f"using {using};\n", output)

    def test_struct(self) -> None:
        output = generate("typedef struct {\n  char name[16];\n  BOOL flag;\n} Rec;\n")
        self.assertIn(
            "[StructLayout (LayoutKind.Sequential)]\n"
            "public struct Rec\n"
            "{\n"
            "    [MarshalAs (UnmanagedType.ByValArray, SizeConst = 16)]\n"
            "    public sbyte[] name;\n"
            "\n"
            "    [MarshalAs (UnmanagedType.I1)]\n"
            "    public bool flag;\n"
            "}\n",
            output,
        )

    def test_delegate_and_forward_declarations(self) -> None:
        output = generate("@class Foo;\n@protocol Bar;\ntypedef void (^DoneBlock)(BOOL success);\n")
        self.assertIn("// @class Foo;\n// @protocol Bar;\n", output)
        self.assertIn("// typedef void (^DoneBlock)(BOOL success);\ndelegate void DoneHandler (bool success);\n", output)


class RenderHelperTests(unittest.TestCase):
    def test_return_null_allowed_is_not_merged(self) -> None:
        lines = render_attribute_lines(
            [Attribute("NullAllowed", target="return"), Attribute("Export", ['"name"'])],
            "",
        )
        self.assertEqual(lines, ["[return: NullAllowed]", '[Export ("name")]'])

    def test_usings_default_to_foundation(self) -> None:
        declarations = assemble(parse_header("@interface Foo : NSObject\n- (void)run;\n@end\n"))
        self.assertEqual(collect_usings(declarations), ["Foundation"])


if __name__ == "__main__":
    unittest.main()
