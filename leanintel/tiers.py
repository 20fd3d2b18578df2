"""Documentation tiers, per-project-type document catalogs and size modes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

TIER_ORDER: tuple[str, ...] = ("minimal", "standard", "comprehensive")
SIZE_MODE_ORDER: tuple[str, ...] = ("compact", "standard", "max")

TIER_DESCRIPTIONS: dict[str, str] = {
    "minimal": "Small codebase - focused documentation",
    "standard": "Medium codebase - balanced documentation",
    "comprehensive": "Large codebase - full documentation suite",
}

TIER_SIZE_MODES: dict[str, str] = {
    "minimal": "compact",
    "standard": "standard",
    "comprehensive": "max",
}

ASSISTANT_MIN_SIZE_MODES: dict[str, str] = {
    "claude-code": "standard",
    "cursor": "standard",
    "chatgpt": "standard",
    "gemini": "standard",
    "copilot": "compact",
}

_REGULATED_INDUSTRY = re.compile(r"health|medical|fhir|hipaa|finance|fintech|banking", re.IGNORECASE)


@dataclass(frozen=True)
class DocFile:
    """One documentation artifact the generator can produce."""

    filename: str
    description: str
    required_for: str
    sections: Tuple[str, ...] = ()


def _doc(filename: str, description: str, required_for: str, *sections: str) -> DocFile:
    return DocFile(filename, description, required_for, tuple(sections))


DOC_CATALOGS: Dict[str, Tuple[DocFile, ...]] = {
    "frontend": (
        _doc("ARCHITECTURE.md", "Project architecture, tech stack, and overall structure", "minimal",
             "Project Overview", "Tech Stack", "Project Structure", "Architecture Patterns",
             "Key Dependencies", "Build & Development"),
        _doc("COMPONENTS.md", "Component architecture, patterns, and component library", "standard",
             "Component Overview", "Component Structure", "Reusable Components", "Component Patterns",
             "Props & Interfaces", "Component Testing"),
        _doc("ROUTING.md", "Routing structure, navigation, and route configuration", "standard",
             "Routing Overview", "Route Structure", "Route Configuration", "Navigation Patterns",
             "Route Guards", "Dynamic Routes"),
        _doc("STATE_MANAGEMENT.md", "State management approach, stores, and data flow", "standard",
             "State Management Overview", "Store Structure", "State Slices", "Actions & Reducers",
             "Selectors", "Async State"),
        _doc("API_LAYER.md", "API integration, data fetching, and API client configuration", "standard",
             "API Overview", "API Client Setup", "Endpoints", "Request/Response Handling",
             "Error Handling", "API Utilities"),
        _doc("STYLING.md", "Styling approach, design system, and CSS architecture", "comprehensive",
             "Styling Overview", "Styling Approach", "Design Tokens", "Component Styles",
             "Global Styles", "Responsive Design"),
        _doc("FORMS.md", "Form handling, validation, and form libraries", "comprehensive",
             "Forms Overview", "Form Libraries", "Form Components", "Validation", "Form State",
             "Error Handling"),
        _doc("AUTHENTICATION.md", "Authentication and authorization implementation", "standard",
             "Auth Overview", "Auth Flow", "Auth State", "Protected Routes", "Token Management",
             "Auth Utilities"),
        _doc("DEVELOPMENT_PATTERNS.md", "Common development patterns, conventions, and best practices",
             "standard", "Code Conventions", "Common Patterns", "File Organization",
             "Naming Conventions", "Common Issues", "Development Tips"),
    ),
    "backend": (
        _doc("ARCHITECTURE.md", "Project architecture, tech stack, and system design", "minimal",
             "Project Overview", "Tech Stack", "Architecture Pattern", "System Components",
             "Data Flow", "Key Dependencies"),
        _doc("API.md", "API endpoints, request/response formats, and API design", "standard",
             "API Overview", "Endpoints", "Request/Response Formats", "Authentication",
             "Error Responses", "API Versioning"),
        _doc("DATABASE.md", "Database schema, models, and data layer", "standard",
             "Database Overview", "Schema", "Models/Entities", "Relationships", "Migrations", "Queries"),
        _doc("AUTHENTICATION.md", "Authentication and authorization strategy", "standard",
             "Auth Overview", "Auth Strategy", "Token Management", "Auth Middleware",
             "User Sessions", "Security"),
        _doc("AUTHORIZATION.md", "Authorization, RBAC, and permissions", "comprehensive",
             "Authorization Overview", "Roles & Permissions", "Access Control",
             "Policy Enforcement", "Guards"),
        _doc("MIDDLEWARE.md", "Middleware chain, request processing, and middleware configuration",
             "standard", "Middleware Overview", "Middleware Chain", "Custom Middleware",
             "Error Handling Middleware", "Logging Middleware"),
        _doc("VALIDATION.md", "Input validation and data validation patterns", "comprehensive",
             "Validation Overview", "Validation Libraries", "Request Validation",
             "Schema Validation", "Custom Validators"),
        _doc("ERROR_HANDLING.md", "Error handling strategy and error responses", "standard",
             "Error Handling Overview", "Error Types", "Error Middleware", "Error Responses",
             "Logging Errors"),
        _doc("TESTING.md", "Testing approach, test coverage, and test patterns", "comprehensive",
             "Testing Overview", "Unit Tests", "Integration Tests", "E2E Tests", "Test Utilities",
             "Test Coverage"),
        _doc("SECURITY.md", "Security best practices and security implementation", "comprehensive",
             "Security Overview", "Input Sanitization", "CORS Configuration", "Rate Limiting",
             "Security Headers", "Secrets Management"),
        _doc("DEVELOPMENT_PATTERNS.md", "Common development patterns, conventions, and best practices",
             "standard", "Code Conventions", "Project Structure", "Naming Conventions",
             "Common Patterns", "Common Issues", "Development Tips"),
    ),
    "mobile": (
        _doc("ARCHITECTURE.md", "Mobile app architecture, tech stack, and structure", "minimal",
             "App Overview", "Tech Stack", "Project Structure", "Architecture Pattern",
             "Key Dependencies", "Platform Support"),
        _doc("NAVIGATION.md", "Navigation structure, screen flow, and routing", "standard",
             "Navigation Overview", "Navigation Library", "Screen Structure", "Navigation Flow",
             "Deep Linking", "Navigation Guards"),
        _doc("SCREENS.md", "Screen components, layouts, and UI structure", "standard",
             "Screens Overview", "Screen Structure", "Screen Components", "Screen Props",
             "Screen State", "Screen Patterns"),
        _doc("STATE_MANAGEMENT.md", "State management, data flow, and persistence", "standard",
             "State Overview", "State Library", "Store Structure", "Actions & Reducers",
             "Local Storage", "Async State"),
        _doc("API_INTEGRATION.md", "API integration, network calls, and data fetching", "standard",
             "API Overview", "HTTP Client", "Endpoints", "Request Handling", "Offline Support",
             "Cache Strategy"),
        _doc("NATIVE_MODULES.md", "Native modules, platform-specific code, and bridges", "comprehensive",
             "Native Modules Overview", "iOS Native Code", "Android Native Code", "Native Bridges",
             "Platform APIs", "Permissions"),
        _doc("STYLING.md", "Styling approach, design system, and theming", "comprehensive",
             "Styling Overview", "Styling Library", "Design Tokens", "Component Styles",
             "Responsive Design", "Dark Mode"),
        _doc("AUTHENTICATION.md", "Authentication flow and user session management", "standard",
             "Auth Overview", "Auth Flow", "Token Management", "Biometric Auth", "Secure Storage",
             "Session Handling"),
        _doc("BUILD_DEPLOYMENT.md", "Build process, deployment, and release procedures", "comprehensive",
             "Build Overview", "iOS Build", "Android Build", "Environment Config",
             "Release Process", "App Store Deployment"),
        _doc("DEVELOPMENT_PATTERNS.md", "Common patterns, conventions, and best practices", "standard",
             "Code Conventions", "Project Structure", "Naming Conventions", "Common Patterns",
             "Common Issues", "Development Tips"),
    ),
    "devops": (
        _doc("ARCHITECTURE.md", "Infrastructure architecture and cloud platform overview", "minimal",
             "Infrastructure Overview", "Cloud Platform", "Architecture Diagram", "Key Components",
             "Technology Stack", "Design Decisions"),
        _doc("INFRASTRUCTURE.md", "IaC definitions, resource configuration, and infrastructure setup",
             "standard", "Infrastructure Overview", "Resource Definitions", "Terraform/Pulumi Modules",
             "Resource Dependencies", "State Management", "Infrastructure Patterns"),
        _doc("NETWORKING.md", "Network architecture, VPCs, subnets, and connectivity", "standard",
             "Network Overview", "VPC Configuration", "Subnets & Routing", "Network Security",
             "Load Balancers", "DNS Configuration"),
        _doc("SECURITY.md", "Security policies, IAM, and access controls", "standard",
             "Security Overview", "IAM Roles & Policies", "Security Groups", "Encryption",
             "Secrets Management", "Compliance"),
        _doc("COMPUTE.md", "Compute resources, containers, and scaling configuration", "comprehensive",
             "Compute Overview", "EC2/ECS/EKS Resources", "Container Configuration", "Auto-Scaling",
             "Load Balancing", "Instance Types"),
        _doc("STORAGE.md", "Storage resources, databases, and data persistence", "comprehensive",
             "Storage Overview", "Database Resources", "Object Storage", "Block Storage",
             "Backup Strategy", "Data Retention"),
        _doc("CI_CD.md", "CI/CD pipelines, automation, and deployment workflows", "standard",
             "CI/CD Overview", "Pipeline Configuration", "Build Process", "Test Automation",
             "Deployment Stages", "Pipeline Triggers"),
        _doc("DEPLOYMENT.md", "Deployment procedures, strategies, and rollback processes", "standard",
             "Deployment Overview", "Deployment Strategy", "Environments", "Deployment Steps",
             "Rollback Procedures", "Blue-Green/Canary"),
        _doc("MONITORING.md", "Monitoring, logging, and alerting configuration", "comprehensive",
             "Monitoring Overview", "Metrics & Dashboards", "Logging Configuration", "Alerting Rules",
             "Observability Tools", "Log Aggregation"),
        _doc("DISASTER_RECOVERY.md", "Backup, disaster recovery, and business continuity", "comprehensive",
             "DR Overview", "Backup Strategy", "Recovery Procedures", "RTO & RPO", "Failover Process",
             "DR Testing"),
        _doc("SCALING.md", "Auto-scaling configuration and capacity planning", "comprehensive",
             "Scaling Overview", "Auto-Scaling Policies", "Capacity Planning", "Performance Targets",
             "Scaling Triggers", "Cost Optimization"),
        _doc("COST_OPTIMIZATION.md", "Cost analysis, optimization strategies, and budget management",
             "comprehensive", "Cost Overview", "Resource Costs", "Cost Optimization",
             "Reserved Instances", "Cost Monitoring", "Budget Alerts"),
        _doc("ENVIRONMENTS.md", "Environment configurations and environment-specific settings",
             "comprehensive", "Environments Overview", "Dev Environment", "Staging Environment",
             "Production Environment", "Environment Differences", "Promotion Process"),
        _doc("RUNBOOKS.md", "Operational runbooks and incident response procedures", "comprehensive",
             "Runbooks Overview", "Common Operations", "Incident Response", "Troubleshooting",
             "Maintenance Procedures", "Emergency Contacts"),
        _doc("DEVELOPMENT_PATTERNS.md", "Common patterns, conventions, and best practices", "standard",
             "IaC Conventions", "Naming Conventions", "Tagging Strategy", "Common Patterns",
             "Common Issues", "Development Tips"),
    ),
    "generic": (
        _doc("ARCHITECTURE.md", "Project overview, tech stack, and structure", "minimal",
             "Project Overview", "Tech Stack", "Project Structure", "Key Directories", "Entry Points",
             "Key Dependencies"),
        _doc("CODEBASE.md", "Source code organization, key modules, and entry points", "standard",
             "Source Organization", "Key Modules", "Entry Points", "Module Dependencies",
             "Code Conventions"),
        _doc("DEPENDENCIES.md", "Dependencies, configuration, and build setup", "standard",
             "Production Dependencies", "Development Dependencies", "Build Configuration",
             "Scripts and Commands", "Environment Configuration"),
        _doc("AUTHENTICATION.md", "Authentication implementation if present", "standard",
             "Auth Overview", "Auth Strategy", "Token Management", "Auth Flow",
             "Security Considerations"),
        _doc("ERROR_HANDLING.md", "Error handling patterns and logging", "standard",
             "Error Handling Overview", "Error Types", "Error Propagation", "Logging Strategy",
             "Error Recovery"),
        _doc("TESTING.md", "Test setup, patterns, and coverage", "comprehensive",
             "Testing Overview", "Test Framework", "Test Structure", "Test Patterns", "Running Tests",
             "Test Coverage"),
        _doc("SECURITY.md", "Security practices and considerations", "comprehensive",
             "Security Overview", "Input Validation", "Authentication & Authorization",
             "Secrets Management", "Security Dependencies"),
        _doc("DEVELOPMENT_PATTERNS.md", "Conventions, patterns, and common issues", "standard",
             "Code Conventions", "Project Patterns", "Common Issues", "Development Setup",
             "Development Tips"),
    ),
}


def determine_documentation_tier(
    file_count: int,
    *,
    project_type: Optional[str] = None,
    is_monorepo: bool = False,
    has_complex_domain: bool = False,
    industry: Optional[str] = None,
) -> str:
    """Pick how much documentation a codebase of this shape deserves."""
    if industry and _REGULATED_INDUSTRY.search(industry):
        return "comprehensive"
    if is_monorepo:
        return "comprehensive"
    if has_complex_domain and file_count >= 15:
        return "standard" if file_count < 150 else "comprehensive"
    if file_count < 20:
        return "minimal"
    if file_count < 200:
        return "standard"
    return "comprehensive"


def catalog_for(project_type: str) -> Tuple[DocFile, ...]:
    return DOC_CATALOGS.get(project_type, DOC_CATALOGS["generic"])


def files_for_tier(project_type: str, tier: str) -> List[DocFile]:
    """Return the catalog entries required at ``tier`` or any lower tier."""
    if tier not in TIER_ORDER:
        raise ValueError(f"Unknown documentation tier: {tier}")
    ceiling = TIER_ORDER.index(tier)
    return [doc for doc in catalog_for(project_type) if TIER_ORDER.index(doc.required_for) <= ceiling]


def size_mode_for(tier: str, assistant: str, override: Optional[str] = None) -> str:
    """Choose the AI assistant size mode: the larger of the tier's and the assistant's minimum."""
    if override:
        if override not in SIZE_MODE_ORDER:
            raise ValueError(f"Unknown size mode: {override}")
        return override
    tier_mode = TIER_SIZE_MODES.get(tier, "standard")
    assistant_mode = ASSISTANT_MIN_SIZE_MODES.get(assistant, "standard")
    return SIZE_MODE_ORDER[max(SIZE_MODE_ORDER.index(tier_mode), SIZE_MODE_ORDER.index(assistant_mode))]


__all__ = [
    "ASSISTANT_MIN_SIZE_MODES",
    "DOC_CATALOGS",
    "DocFile",
    "SIZE_MODE_ORDER",
    "TIER_DESCRIPTIONS",
    "TIER_ORDER",
    "TIER_SIZE_MODES",
    "catalog_for",
    "determine_documentation_tier",
    "files_for_tier",
    "size_mode_for",
]
