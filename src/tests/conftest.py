from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from exception_graph.config import AnalyzerConfig
from exception_graph.models import ClassInfo, MethodInfo, MethodSignature
from exception_graph.project_database import ProjectDatabase


class ProjectBuilder:
    """
    Small harness that assembles ingestion maps by hand, the way a front-end
    would, without parsing any Java.
    """

    def __init__(self, config: AnalyzerConfig | None = None):
        self.config = config
        self.classes: dict[str, ClassInfo] = {}
        self.infos: dict[MethodSignature, MethodInfo] = {}
        self.bound: set[MethodSignature] = set()

    def cls(self, name, extends=None, implements=(), interface=False) -> str:
        self.classes[name] = ClassInfo(name, extends, set(implements), interface)
        return name

    def method(self, owner, name, params=(), throws=(), package=None, body=True) -> MethodSignature:
        sig = MethodSignature(owner, name, tuple(params), package, tuple(throws))
        if owner in self.classes:
            self.classes[owner].methods.add(sig)
        if body:
            self.infos[sig] = MethodInfo(sig)
        else:
            self.bound.add(sig)
        return sig

    def call(self, caller, callee, catches=()):
        self.infos[caller].add_calling(callee, catches)

    def throw(self, method, exception):
        self.infos[method].throws_in_body.add(exception)

    def database(self) -> ProjectDatabase:
        db = ProjectDatabase(self.config)
        for name, info in self.classes.items():
            db.add_class_binding(name, info)
        for info in self.infos.values():
            db.add_method(info)
        for sig in self.bound:
            db.add_method_binding(sig, {"external": True})
        return db

    def build(self) -> ProjectDatabase:
        db = self.database()
        db.build()
        return db


@pytest.fixture()
def project() -> ProjectBuilder:
    return ProjectBuilder()


@pytest.fixture()
def exceptions(project) -> ProjectBuilder:
    """Builder preloaded with Throwable > Exception > E0 > E1"""
    project.cls("Throwable")
    project.cls("Exception", extends="Throwable")
    project.cls("E0", extends="Exception")
    project.cls("E1", extends="E0")
    return project


def write_java(root: Path, files: dict[str, str]) -> Path:
    for rel, code in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(code).lstrip("\n"), encoding="utf-8")
    return root


def find_sig(db, text: str) -> MethodSignature:
    matches = [s for s in db.method_to_info if str(s) == text]
    assert len(matches) == 1, (text, sorted(str(s) for s in db.method_to_info))
    return matches[0]


SHOP_PROJECT = {
    "com/acme/AppException.java": """
        package com.acme;

        public class AppException extends Exception {
            public AppException(String message) {
                super(message);
            }
        }
    """,
    "com/acme/Repository.java": """
        package com.acme;

        public class Repository {
            public String find(String id) throws AppException {
                if (id == null) {
                    throw new AppException("missing");
                }
                return id;
            }
        }
    """,
    "com/acme/CachedRepository.java": """
        package com.acme;

        public class CachedRepository extends Repository {
            @Override
            public String find(String id) throws AppException {
                return "cached:" + id;
            }
        }
    """,
    "com/acme/Service.java": """
        package com.acme;

        public class Service {
            private Repository repo;

            public String safe(String id) {
                try {
                    return repo.find(id);
                } catch (AppException e) {
                    return null;
                }
            }

            public String risky(String id) throws AppException {
                return repo.find(id);
            }

            public String broad(String id) {
                try {
                    return risky(id);
                } catch (Exception e) {
                    return "";
                }
            }

            public void pause() throws InterruptedException {
                Thread.sleep(10);
            }
        }
    """,
}


@pytest.fixture()
def shop_project(tmp_path) -> Path:
    return write_java(tmp_path / "shop", SHOP_PROJECT)
