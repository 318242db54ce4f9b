"""
Domain vocabulary used to bias recognition and to measure technical density.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from .models import JobRole

# Boosted for every job; recognition otherwise mangles these
TECH_WORD_BOOST: Tuple[str, ...] = (
    "API", "REST", "GraphQL", "microservices", "containerization", "Kubernetes",
    "Docker", "CI/CD", "DevOps", "Agile", "Scrum", "JavaScript", "TypeScript",
    "React", "Node.js", "Python", "machine learning", "artificial intelligence",
    "data structures", "algorithms", "database", "SQL", "NoSQL", "cloud computing",
    "frontend", "backend", "fullstack", "framework", "library", "repository",
    "version control", "Git", "GitHub", "AWS", "Azure", "Google Cloud",
    "SOLID principles", "design patterns", "MVC", "MVP", "MVVM", "object-oriented",
    "functional programming", "asynchronous", "synchronous", "authentication",
    "authorization", "encryption", "security", "performance optimization",
    "scalability", "load balancing", "caching", "testing", "unit testing",
    "integration testing", "debugging", "troubleshooting", "deployment",
    "monitoring", "analytics",
)

_SOFTWARE = (
    "refactoring", "debugging", "optimization", "architecture", "scalability",
    "maintainability", "modularity", "polymorphism", "inheritance", "encapsulation",
    "abstraction", "dependency injection", "inversion of control",
    "test-driven development", "behavior-driven development", "continuous integration",
    "continuous deployment", "code review", "pair programming", "technical debt",
    "legacy code", "performance metrics", "profiling", "memory management",
    "garbage collection", "concurrency", "multithreading", "asynchronous programming",
    "event-driven", "reactive programming", "functional programming",
    "imperative programming", "declarative programming",
)

_DATA = (
    "neural networks", "deep learning", "supervised learning", "unsupervised learning",
    "reinforcement learning", "feature engineering", "data preprocessing",
    "dimensionality reduction", "cross-validation", "overfitting", "underfitting",
    "regularization", "gradient descent", "backpropagation", "ensemble methods",
    "random forest", "support vector machines", "k-means clustering",
    "principal component analysis", "natural language processing", "computer vision",
    "time series analysis", "statistical significance", "p-value", "hypothesis testing",
    "correlation", "regression analysis", "classification", "clustering",
    "anomaly detection", "recommendation systems", "A/B testing", "experimental design",
)

_DEVOPS = (
    "infrastructure as code", "configuration management", "orchestration",
    "containerization", "virtualization", "monitoring", "alerting", "logging",
    "observability", "distributed systems", "high availability", "disaster recovery",
    "backup strategies", "security hardening", "vulnerability assessment",
    "penetration testing", "compliance", "automation", "scripting", "pipeline",
    "deployment strategies", "blue-green deployment", "canary deployment",
    "rolling deployment", "infrastructure monitoring",
    "application performance monitoring", "service mesh", "load balancing",
    "auto-scaling", "capacity planning", "cost optimization",
)

_PRODUCT = (
    "user experience", "user interface", "product roadmap", "feature prioritization",
    "stakeholder management", "requirements gathering", "user stories",
    "acceptance criteria", "sprint planning", "retrospectives", "stand-ups",
    "burndown charts", "velocity", "backlog grooming", "product backlog",
    "minimum viable product", "product-market fit", "customer journey",
    "user personas", "market research", "competitive analysis",
    "go-to-market strategy", "pricing strategy", "revenue models",
    "key performance indicators", "metrics", "analytics", "conversion rates",
    "retention rates", "churn analysis", "customer feedback", "usability testing",
)

# role title aliases -> vocabulary
ROLE_VOCABULARY: Dict[Tuple[str, ...], Tuple[str, ...]] = {
    ("software engineer", "developer", "programmer"): _SOFTWARE,
    ("data scientist", "data analyst", "ml engineer"): _DATA,
    ("devops", "sre", "infrastructure"): _DEVOPS,
    ("product manager", "project manager"): _PRODUCT,
}


def _dedupe(terms: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for term in terms:
        key = term.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(term.strip())
    return out


def role_vocabulary(job_role: Optional[JobRole]) -> List[str]:
    """
    Terms associated with a job role.

    A title matches an alias exactly or by containment ("Senior Software
    Engineer" matches "software engineer"). The role's required skills are
    always included; roles with no known vocabulary and no skills fall
    back to the general tech terms.
    """
    if job_role is None:
        return list(TECH_WORD_BOOST)

    title = job_role.title.lower().strip()
    terms: List[str] = []
    for aliases, vocabulary in ROLE_VOCABULARY.items():
        if any(title == alias or alias in title for alias in aliases):
            terms.extend(vocabulary)
            break
    terms.extend(job_role.required_skills)
    if not terms:
        terms.extend(TECH_WORD_BOOST)
    return _dedupe(terms)


def boost_terms(job_role: Optional[JobRole], extra: Iterable[str] = ()) -> List[str]:
    """Word-boost list for a transcription job."""
    role_terms = role_vocabulary(job_role) if job_role is not None else []
    return _dedupe(list(TECH_WORD_BOOST) + role_terms + list(extra))
