"""Instruction templates for repository analysis reports."""

from __future__ import annotations

from string import Template

__all__ = ["DEFAULT_SYSTEM_PROMPT", "build_user_prompt"]

DEFAULT_SYSTEM_PROMPT = """You are a systems architect with twenty years of kernel-level experience. Your task is to write an in-depth technical audit report for a GitHub project.

**Mindset**:
1. **No shallow summaries**: do not only say what the code does, explain **why** it does it that way.
2. **Trade-offs first**: every architecture is a trade-off. Analyse what the authors gave up (for example simplicity) and what they gained (for example throughput).
3. **Look underneath**: cover the memory model, concurrency control, IO model, and data consistency.

**Structure protocol**:
- Follow the user's Markdown template exactly. **Do not add or remove sections.**
- Do not rename the H2 headings.

**Mermaid stability protocol**:
- Only use `graph TD` and `sequenceDiagram`.
- Node ids must be plain ASCII without spaces.
- Never use style/classDef.

**Formatting rules**:
- Wrap key technical terms (such as `mmap`, `epoll`, `Raft`) in inline code.
- Render file paths in **bold**."""

_USER_TEMPLATE = Template(
    """
Target project: "$repo_name"
Project description: "$description"

Fill in the following template. The content must be **deep and specific**; avoid generic statements.

# $repo_name Technical Deep Dive

## 1. Architecture and Technology Stack
### Architecture Overview
```mermaid
graph TD
%% Node ids are plain ASCII, labels may be any language
Core[Core engine] --> Plugin[Plugin system]
Core --> Network[Network layer]
Network --> Protocol[Protocol parser]
```
> **Architecture style**: [e.g. microkernel / event driven / layered]

### Technology Choices
- **Language**: [why this language? e.g. goroutines in Go or memory safety in Rust]
- **Key dependencies**: [core libraries (e.g. etcd, netty, tokio) and their role]

## 2. Hard Problems and Design Trade-offs
(Pick the 2 hardest technical problems in the project and analyse the authors' solutions.)

### [Problem 1: e.g. zero-copy transfer at scale]
- **Background**: [the bottleneck or concurrency challenge]
- **Strategy**: [the solution in depth, e.g. sendfile or a memory pool]
- **Compromise**: [what was sacrificed, e.g. code complexity]

### [Problem 2: e.g. state consistency in a distributed setting]
- **Background**: ...
- **Strategy**: ...

## 3. Key Flows
### [Core scenario] Sequence Diagram
> Scenario: [e.g. write and persistence path]
```mermaid
sequenceDiagram
participant Client as Client
participant NodeA as Primary
participant Disk as WAL
Client->>NodeA: write request
NodeA->>Disk: append log (fsync)
Disk-->>NodeA: durable
NodeA-->>Client: success
```

## 4. Core Source Walkthrough
(Pick the 3 lowest-level core modules. Cover memory management, locking, and state machines.)

### [Core module 1]
- **File path**: `path/to/file.ext`
- **Analysis**: [algorithmic complexity, data structure design, or concurrency model]

```[language]
// Inline comments must explain why, not what
func coreLogic() {
    // double-checked locking keeps the hot path lock free
    if check() { ... }
}
```

### [Core module 2]
- **File path**: `path/to/file.ext`
- **Analysis**: ...

```[language]
// key code
```

### [Core module 3]
- **File path**: `path/to/file.ext`
- **Analysis**: ...

```[language]
// key code
```

## 5. Directory Layout
```text
root/
├── src/          # core sources
└── docs/         # documentation
```

## 6. Summary and Recommendation
- **Core value**: [the essential problem the project solves]
- **Good fit**: [when to use it]
- **Limitations**: [when to avoid it]
- **Technical rating**: ⭐️⭐️⭐️⭐️⭐️
"""
)


def build_user_prompt(repo_name: str, description: str | None) -> str:
    return _USER_TEMPLATE.substitute(
        repo_name=repo_name,
        description=(description or "").strip() or "No description",
    )
