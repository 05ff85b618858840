import pytest

from conftest import find_sig, write_java
from exception_graph.analyzer import build_database, index_repo
from exception_graph.binding_resolver import BindingResolver
from exception_graph.config import AnalyzerConfig


@pytest.fixture()
def shop_db(shop_project):
    return build_database(shop_project)


def test_index_repo_parses_every_java_file(shop_project):
    files = index_repo(shop_project)
    assert [f["path"].rsplit("/", 1)[-1] for f in files] == [
        "AppException.java", "CachedRepository.java", "Repository.java", "Service.java"]


def test_type_resolution(shop_project):
    resolver = BindingResolver().resolve(index_repo(shop_project))
    owner = "com.acme.Service"
    assert resolver.resolve_type("Repository", owner) == "com.acme.Repository"
    assert resolver.resolve_type("Exception", owner) == "java.lang.Exception"
    assert resolver.resolve_type("int", owner) is None
    assert resolver.resolve_type("System.out", owner) is None
    assert resolver.resolve_type("org.vendor.Thing", owner) == "org.vendor.Thing"
    assert resolver.resolve_exception("VendorException", owner) == "VendorException"
    assert resolver.parents["com.acme.CachedRepository"] == "com.acme.Repository"
    assert resolver.parents["com.acme.AppException"] == "java.lang.Exception"
    assert resolver.fields["com.acme.Service"]["repo"] == "com.acme.Repository"


def test_method_facts(shop_db):
    find = find_sig(shop_db, "com.acme.Repository#find(String)")
    assert find.throws_declaration == ("com.acme.AppException",)
    assert find.package_name == "com.acme"
    assert shop_db.method_to_info[find].throws_in_body == {"com.acme.AppException"}

    safe = shop_db.method_to_info[find_sig(shop_db, "com.acme.Service#safe(String)")]
    assert safe.callings == {find}
    assert safe.calling_to_handlers == {find: {"com.acme.AppException"}}

    broad = shop_db.method_to_info[find_sig(shop_db, "com.acme.Service#broad(String)")]
    risky = find_sig(shop_db, "com.acme.Service#risky(String)")
    assert broad.calling_to_handlers == {risky: {"java.lang.Exception"}}


def test_constructor_calls_are_edges(shop_db):
    find = shop_db.method_to_info[find_sig(shop_db, "com.acme.Repository#find(String)")]
    ctor = find_sig(shop_db, "com.acme.AppException#<init>(String)")
    assert ctor in find.callings
    # super(message) lands on the platform constructor
    super_ctor = find_sig(shop_db, "java.lang.Exception#<init>(?)")
    assert shop_db.method_to_info[ctor].callings == {super_ctor}


def test_exception_sources(shop_db):
    sources = [str(s) for s in shop_db.exception_sources()]
    assert sources == ["com.acme.Repository#find(String)", "java.lang.Thread#sleep(long)"]


def test_chains_through_the_project(shop_db):
    find = find_sig(shop_db, "com.acme.Repository#find(String)")
    chains = shop_db.chains_from_source(find)
    assert [[(str(e.method), e.handled) for e in c.chain] for c in chains] == [
        [("com.acme.Service#safe(String)", True)],
        [("com.acme.Service#risky(String)", False), ("com.acme.Service#broad(String)", True)],
    ]
    assert {c.exception for c in chains} == {"com.acme.AppException"}


def test_override_is_a_dispatch_target(shop_db):
    cached = find_sig(shop_db, "com.acme.CachedRepository#find(String)")
    assert not shop_db.is_exception_source(cached)
    callers = [str(c) for c in shop_db.callers_of(cached)]
    assert callers == ["com.acme.Service#risky(String)", "com.acme.Service#safe(String)"]
    chains = shop_db.chains_from_source(cached)
    assert chains[0].chain[0].handled


def test_platform_method_chain(shop_db):
    sleep = find_sig(shop_db, "java.lang.Thread#sleep(long)")
    assert sleep.throws_declaration == ("java.lang.InterruptedException",)
    [chain] = shop_db.chains_from_source(sleep)
    assert chain.exception == "java.lang.InterruptedException"
    assert [(str(e.method), e.handled) for e in chain.chain] == [("com.acme.Service#pause()", False)]


def test_interface_dispatch_and_wildcard_imports(tmp_path):
    root = write_java(tmp_path / "tasks", {
        "tasks/Task.java": """
            package tasks;

            public interface Task {
                void run() throws Exception;
            }
        """,
        "tasks/FileTask.java": """
            package tasks;

            import java.io.*;

            public class FileTask implements Task {
                public void run() throws IOException {
                    throw new FileNotFoundException("gone");
                }
            }
        """,
        "tasks/Runner.java": """
            package tasks;

            public class Runner {
                public void start(Task task) {
                    try {
                        task.run();
                    } catch (java.io.IOException e) {
                        report(e);
                    } catch (Exception e) {
                        report(e);
                    }
                }

                void report(Exception e) { }
            }
        """,
    })
    db = build_database(root, AnalyzerConfig(unknown_class_compatible=False))
    run = find_sig(db, "tasks.FileTask#run()")
    assert db.method_to_info[run].throws_in_body == {"java.io.FileNotFoundException"}

    [chain] = [c for c in db.chains_from_source(run) if c.exception == "java.io.FileNotFoundException"]
    assert [(str(e.method), e.handled) for e in chain.chain] == [("tasks.Runner#start(Task)", True)]


def test_inherited_project_method_wins_over_library_supertype(tmp_path):
    root = write_java(tmp_path / "svc", {
        "q/Base.java": """
            package q;

            public class Base {
                void load() {
                    throw new java.lang.IllegalStateException("empty");
                }
            }
        """,
        "q/Mid.java": """
            package q;

            public class Mid extends Base { }
        """,
        "q/Svc.java": """
            package q;

            public class Svc extends Mid implements Runnable {
                public void run() {
                    load();
                }
            }
        """,
    })
    db = build_database(root)
    load = find_sig(db, "q.Base#load()")
    run = db.method_to_info[find_sig(db, "q.Svc#run()")]
    assert run.callings == {load}

    [chain] = db.chains_from_source(load)
    assert chain.exception == "java.lang.IllegalStateException"
    assert [(str(e.method), e.handled) for e in chain.chain] == [("q.Svc#run()", False)]


def test_project_interface_method_behind_library_superclass(tmp_path):
    root = write_java(tmp_path / "jobs", {
        "jobs/Audited.java": """
            package jobs;

            public interface Audited {
                default void audit() { }
            }
        """,
        "jobs/Job.java": """
            package jobs;

            public class Job extends Thread implements Audited {
                public void run() {
                    audit();
                    interrupt();
                }
            }
        """,
    })
    db = build_database(root)
    run = db.method_to_info[find_sig(db, "jobs.Job#run()")]
    assert sorted(str(c) for c in run.callings) == [
        "java.lang.Thread#interrupt()", "jobs.Audited#audit()"]
