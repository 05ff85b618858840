"""
What the analyzer knows about the Java platform without parsing it: the
implicitly imported java.lang names, the standard exception hierarchy and
the throws clauses of commonly called library methods.
"""

from typing import Dict, List, Optional, Tuple

from .models import ClassInfo, MethodSignature

JAVA_LANG_TYPES = {
    "Object", "String", "StringBuilder", "StringBuffer", "Math", "System", "Thread",
    "Runnable", "Integer", "Long", "Short", "Byte", "Double", "Float", "Boolean",
    "Character", "Number", "Class", "ClassLoader", "Iterable", "Comparable",
    "AutoCloseable", "CharSequence", "Enum", "Record", "Void", "Process",
    "ProcessBuilder", "Runtime",
}

# class -> superclass
_EXCEPTION_PARENTS = {
    "java.lang.Throwable": "java.lang.Object",
    "java.lang.Exception": "java.lang.Throwable",
    "java.lang.Error": "java.lang.Throwable",
    "java.lang.RuntimeException": "java.lang.Exception",
    "java.lang.IllegalArgumentException": "java.lang.RuntimeException",
    "java.lang.NumberFormatException": "java.lang.IllegalArgumentException",
    "java.lang.IllegalStateException": "java.lang.RuntimeException",
    "java.lang.NullPointerException": "java.lang.RuntimeException",
    "java.lang.ArithmeticException": "java.lang.RuntimeException",
    "java.lang.ClassCastException": "java.lang.RuntimeException",
    "java.lang.UnsupportedOperationException": "java.lang.RuntimeException",
    "java.lang.IndexOutOfBoundsException": "java.lang.RuntimeException",
    "java.lang.ArrayIndexOutOfBoundsException": "java.lang.IndexOutOfBoundsException",
    "java.lang.StringIndexOutOfBoundsException": "java.lang.IndexOutOfBoundsException",
    "java.lang.SecurityException": "java.lang.RuntimeException",
    "java.lang.InterruptedException": "java.lang.Exception",
    "java.lang.CloneNotSupportedException": "java.lang.Exception",
    "java.lang.ReflectiveOperationException": "java.lang.Exception",
    "java.lang.ClassNotFoundException": "java.lang.ReflectiveOperationException",
    "java.lang.NoSuchMethodException": "java.lang.ReflectiveOperationException",
    "java.lang.InstantiationException": "java.lang.ReflectiveOperationException",
    "java.lang.IllegalAccessException": "java.lang.ReflectiveOperationException",
    "java.lang.OutOfMemoryError": "java.lang.Error",
    "java.lang.StackOverflowError": "java.lang.Error",
    "java.lang.AssertionError": "java.lang.Error",
    "java.io.IOException": "java.lang.Exception",
    "java.io.FileNotFoundException": "java.io.IOException",
    "java.io.EOFException": "java.io.IOException",
    "java.io.UncheckedIOException": "java.lang.RuntimeException",
    "java.io.UnsupportedEncodingException": "java.io.IOException",
    "java.net.MalformedURLException": "java.io.IOException",
    "java.net.URISyntaxException": "java.lang.Exception",
    "java.net.SocketException": "java.io.IOException",
    "java.net.UnknownHostException": "java.io.IOException",
    "java.nio.file.NoSuchFileException": "java.io.IOException",
    "java.sql.SQLException": "java.lang.Exception",
    "java.text.ParseException": "java.lang.Exception",
    "java.util.NoSuchElementException": "java.lang.RuntimeException",
    "java.util.ConcurrentModificationException": "java.lang.RuntimeException",
    "java.util.concurrent.ExecutionException": "java.lang.Exception",
    "java.util.concurrent.TimeoutException": "java.lang.Exception",
}

# (class, method, arity) -> (parameter types, declared throws)
PLATFORM_METHOD_THROWS: Dict[Tuple[str, str, int], Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    ("java.lang.Thread", "sleep", 1): (("long",), ("java.lang.InterruptedException",)),
    ("java.lang.Thread", "join", 0): ((), ("java.lang.InterruptedException",)),
    ("java.lang.Object", "wait", 0): ((), ("java.lang.InterruptedException",)),
    ("java.lang.Class", "forName", 1): (("String",), ("java.lang.ClassNotFoundException",)),
    ("java.lang.Integer", "parseInt", 1): (("String",), ("java.lang.NumberFormatException",)),
    ("java.lang.Long", "parseLong", 1): (("String",), ("java.lang.NumberFormatException",)),
    ("java.io.FileReader", "<init>", 1): (("String",), ("java.io.FileNotFoundException",)),
    ("java.io.FileInputStream", "<init>", 1): (("String",), ("java.io.FileNotFoundException",)),
    ("java.io.FileOutputStream", "<init>", 1): (("String",), ("java.io.FileNotFoundException",)),
    ("java.io.BufferedReader", "readLine", 0): ((), ("java.io.IOException",)),
    ("java.io.BufferedReader", "close", 0): ((), ("java.io.IOException",)),
    ("java.io.Reader", "read", 0): ((), ("java.io.IOException",)),
    ("java.io.Reader", "close", 0): ((), ("java.io.IOException",)),
    ("java.io.InputStream", "read", 0): ((), ("java.io.IOException",)),
    ("java.io.InputStream", "close", 0): ((), ("java.io.IOException",)),
    ("java.io.OutputStream", "write", 1): (("int",), ("java.io.IOException",)),
    ("java.io.Writer", "write", 1): (("String",), ("java.io.IOException",)),
    ("java.io.Writer", "close", 0): ((), ("java.io.IOException",)),
    ("java.net.URL", "<init>", 1): (("String",), ("java.net.MalformedURLException",)),
    ("java.net.URI", "<init>", 1): (("String",), ("java.net.URISyntaxException",)),
    ("java.nio.file.Files", "readAllLines", 1): (("Path",), ("java.io.IOException",)),
    ("java.nio.file.Files", "readString", 1): (("Path",), ("java.io.IOException",)),
    ("java.nio.file.Files", "delete", 1): (("Path",), ("java.io.IOException",)),
    ("java.text.DateFormat", "parse", 1): (("String",), ("java.text.ParseException",)),
    ("java.util.concurrent.Future", "get", 0): (
        (), ("java.lang.InterruptedException", "java.util.concurrent.ExecutionException")),
}


def platform_classes() -> List[ClassInfo]:
    """Class records for the built-in exception hierarchy"""
    infos = [ClassInfo("java.lang.Object")]
    for name, parent in sorted(_EXCEPTION_PARENTS.items()):
        infos.append(ClassInfo(name, super_class=parent))
    return infos


def known_platform_names() -> Dict[str, str]:
    """Qualified names of every known platform class, by simple name"""
    names = {simple: f"java.lang.{simple}" for simple in JAVA_LANG_TYPES}
    for fqn, _, _ in PLATFORM_METHOD_THROWS:
        names.setdefault(fqn.rsplit(".", 1)[1], fqn)
    for fqn in _EXCEPTION_PARENTS:
        names.setdefault(fqn.rsplit(".", 1)[1], fqn)
    return names


def known_platform_fqns() -> set:
    return set(known_platform_names().values()) | {fqn for fqn, _, _ in PLATFORM_METHOD_THROWS}


def package_of(fqn: str) -> Optional[str]:
    return fqn.rsplit(".", 1)[0] if "." in fqn else None


def external_signature(owner_fqn: str, name: str, arity: int) -> MethodSignature:
    """Signature for a call into a class whose source is not in the project"""
    known = PLATFORM_METHOD_THROWS.get((owner_fqn, name, arity))
    if known:
        params, throws = known
    else:
        params, throws = ("?",) * arity, ()
    return MethodSignature(owner_fqn, name, params, package_of(owner_fqn), throws)
