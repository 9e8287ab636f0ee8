"""Workflow templates and the trigger matcher.

A matched template only adds advisory guidance to the first user message;
nothing forces the model to follow the suggested steps.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from codemate.domain import WorkflowStep, WorkflowTemplate

WORKFLOW_TEMPLATES: List[WorkflowTemplate] = [
    WorkflowTemplate(
        id="create-react-component",
        name="Create React component",
        description="Create a new React component with TypeScript types and an index module",
        triggers=("创建组件", "新建组件", "react component"),
        category="code",
        steps=(
            WorkflowStep("ask_user", {"question": "What is the component name?"}),
            WorkflowStep("create_directory", {"path": "src/components/{name}"}),
            WorkflowStep("write_file", {"path": "src/components/{name}/{name}.tsx"}),
            WorkflowStep("write_file", {"path": "src/components/{name}/index.ts"}),
        ),
    ),
    WorkflowTemplate(
        id="init-project",
        name="Initialise project",
        description="Scaffold a new front-end project",
        triggers=("初始化项目", "新建项目", "init project"),
        category="code",
        steps=(
            WorkflowStep("ask_user", {"question": "Project name?", "options": ["my-app"]}),
            WorkflowStep(
                "execute_command",
                {"command": "npm create vite@latest {name} -- --template react-ts"},
            ),
        ),
    ),
    WorkflowTemplate(
        id="fix-bug",
        name="Fix bug",
        description="Locate and fix a bug in the code",
        triggers=("修复bug", "fix bug", "调试错误"),
        category="code",
        steps=(
            WorkflowStep("ask_user", {"question": "Describe the problem or paste the error"}),
            WorkflowStep("search_code"),
            WorkflowStep("read_file"),
            WorkflowStep("edit_file"),
        ),
    ),
    WorkflowTemplate(
        id="add-feature",
        name="Add feature",
        description="Add a new feature to an existing project",
        triggers=("添加功能", "实现功能", "add feature"),
        category="code",
        steps=(
            WorkflowStep("ask_user", {"question": "Describe the feature to add"}),
            WorkflowStep("search_code"),
            WorkflowStep("read_file"),
            WorkflowStep("write_file"),
        ),
    ),
    WorkflowTemplate(
        id="refactor-code",
        name="Refactor code",
        description="Restructure existing code to improve its quality",
        triggers=("重构代码", "优化代码", "refactor"),
        category="code",
        steps=(
            WorkflowStep("ask_user", {"question": "Which file or module should be refactored?"}),
            WorkflowStep("read_file"),
            WorkflowStep("edit_file"),
        ),
    ),
    WorkflowTemplate(
        id="search-documentation",
        name="Search documentation",
        description="Look up technical documentation and solutions",
        triggers=("搜索文档", "查找文档", "search docs"),
        category="general",
        steps=(
            WorkflowStep("ask_user", {"question": "What should be searched for?"}),
            WorkflowStep("web_search"),
            WorkflowStep("web_fetch"),
        ),
    ),
]


class WorkflowMatcher:
    """First-match-wins, case-insensitive substring match over trigger phrases."""

    def __init__(self, templates: Optional[Iterable[WorkflowTemplate]] = None):
        self._templates = list(templates if templates is not None else WORKFLOW_TEMPLATES)

    @property
    def templates(self) -> List[WorkflowTemplate]:
        return list(self._templates)

    def match(self, message: str) -> Optional[WorkflowTemplate]:
        lowered = message.lower()
        for template in self._templates:
            for trigger in template.triggers:
                if trigger.lower() in lowered:
                    return template
        return None


def render_guidance(template: WorkflowTemplate) -> str:
    """Advisory text appended to the user's instruction."""
    lines = [f"[Detected workflow: {template.name}]", "Suggested steps:"]
    lines.extend(f"{i}. {step.action}" for i, step in enumerate(template.steps, 1))
    return "\n".join(lines)
