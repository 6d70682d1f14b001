#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Встроенный набор FAQ для первичного наполнения базы знаний."""

from typing import Dict, List

RAW_FAQS: List[Dict[str, str]] = [
    {
        "category": "General",
        "content": "Cimba.AI is a generative-AI platform that allows enterprises to build custom AI agents that automate workflows, provide actionable insights, and integrate with business data without coding.",
    },
    {
        "category": "Usage",
        "content": "Cimba offers a no-code interface enabling business analysts and non-technical users to build AI agents using natural language instead of writing code.",
    },
    {
        "category": "Capabilities",
        "content": "Cimba agents can automate data-heavy tasks, detect anomalies, generate reports, trigger workflow alerts, and provide AI-driven decision recommendations.",
    },
    {
        "category": "Use Cases",
        "content": "Cimba is beneficial for Finance, Operations, Customer Success, and Growth teams by helping optimize data-driven operations and reduce manual effort.",
    },
    {
        "category": "Deployment",
        "content": "Cimba allows companies to deploy their first AI agent in under a week, enabling fast value delivery without deep AI engineering.",
    },
    {
        "category": "Security",
        "content": "Cimba is designed for enterprises with governance, access controls, compliance support, and secure handling of business data.",
    },
    {
        "category": "Action Automation",
        "content": "Cimba agents go beyond analytics to execute actions such as sending alerts, updating CRMs, and launching workflows based on insights.",
    },
    {
        "category": "Differentiation",
        "content": "Unlike traditional BI dashboards, Cimba combines analytics, automation, and adaptive AI to convert insights into direct business actions.",
    },
    {
        "category": "Data Handling",
        "content": "Cimba integrates structured and unstructured data including dashboards, metadata, query history, and operational playbooks for deeper context.",
    },
    {
        "category": "Learning",
        "content": "Cimba AI agents learn from interactions and adapt continuously, improving accuracy and performance over time.",
    },
    {
        "category": "Integrations",
        "content": "Cimba integrates with existing business tools like CRMs, data warehouses, and workflow systems to enhance enterprise analytics and automation.",
    },
    {
        "category": "Fit",
        "content": "Cimba is built for mid-to-large enterprises needing scalable AI automation that supports enterprise-level governance and security.",
    },
    {
        "category": "Build vs Buy",
        "content": "Cimba eliminates the cost and complexity of building custom AI systems in-house, offering faster ROI and reduced development overhead.",
    },
    {
        "category": "Personas",
        "content": "Cimba is designed for business analysts, finance teams, operations managers, customer success leaders, and productivity engineers.",
    },
    {
        "category": "Business Impact",
        "content": "Cimba helps companies streamline decision-making, reduce manual workloads, and accelerate analytics productivity using AI agents.",
    },
]
